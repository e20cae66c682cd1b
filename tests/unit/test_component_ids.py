import pytest

from infodoc.api.handlers import info_docs, writes as write_handlers
from infodoc.services import batch, resolver, transitions, writes
from infodoc.workers import transitions as transition_worker


@pytest.mark.unit
def test_service_component_ids_are_stable() -> None:
    assert writes.COMPONENT_ID == "infodoc.record_write"
    assert batch.COMPONENT_ID_WRITES == "infodoc.record_writes"
    assert batch.COMPONENT_ID_BULK_UPDATE == "infodoc.bulk_update"
    assert resolver.COMPONENT_ID == "infodoc.resolve"
    assert transitions.COMPONENT_ID_STAMP == "infodoc.stamp_outcome"
    assert transitions.COMPONENT_ID_PERSIST == "infodoc.persist_transitions"


@pytest.mark.unit
def test_api_and_worker_component_ids_are_stable() -> None:
    assert write_handlers.COMPONENT_ID == "api.record_document_writes"
    assert info_docs.COMPONENT_ID == "api.get_info_doc"
    assert transition_worker.COMPONENT_ID == "worker.transitions.process_changes"
