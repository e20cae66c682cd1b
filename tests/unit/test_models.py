from datetime import UTC, datetime

import pytest

from infodoc.domain.models import Change, InfoDoc, TransitionOutcome, blank_info_doc


@pytest.mark.unit
def test_blank_info_doc_without_known_date_serializes_unknown_dates() -> None:
    info_doc = blank_info_doc("owner-1")

    assert info_doc.to_document() == {
        "_id": "owner-1-info",
        "type": "info",
        "doc_id": "owner-1",
        "initial_replication_date": "unknown",
        "latest_replication_date": "unknown",
    }


@pytest.mark.unit
def test_blank_info_doc_seeds_both_dates() -> None:
    when = datetime(2024, 5, 1, 12, 30, tzinfo=UTC)

    info_doc = blank_info_doc("owner-1", when)

    assert info_doc.initial_replication_date == when
    assert info_doc.latest_replication_date == when
    assert info_doc.rev is None
    assert info_doc.transitions is None


@pytest.mark.unit
def test_document_round_trip_keeps_unmodelled_fields() -> None:
    doc = {
        "_id": "owner-1-info",
        "_rev": "2-abc",
        "type": "info",
        "doc_id": "owner-1",
        "initial_replication_date": "2024-01-01T00:00:00+00:00",
        "latest_replication_date": "2024-01-02T00:00:00Z",
        "transitions": {"update_clinics": {"last_rev": "1-x", "seq": 12, "ok": True}},
        "muting_history": [{"muted": True}],
        "some_new": "info",
    }

    info_doc = InfoDoc.from_document(doc)

    assert info_doc.rev == "2-abc"
    assert info_doc.latest_replication_date == datetime(2024, 1, 2, tzinfo=UTC)
    assert info_doc.transitions == {"update_clinics": TransitionOutcome(last_rev="1-x", seq=12, ok=True)}
    assert info_doc.extra == {"some_new": "info"}
    assert info_doc.to_document() == doc | {"latest_replication_date": "2024-01-02T00:00:00+00:00"}


@pytest.mark.unit
def test_legacy_flag_is_never_serialized() -> None:
    legacy = InfoDoc.from_document({"_id": "a-info", "_rev": "5-old", "transitions": {}})

    adopted = legacy.adopted_from_legacy()

    assert adopted.legacy_sourced is True
    assert adopted.rev is None
    assert legacy.rev == "5-old"
    assert "legacy_sourced" not in adopted.to_document()
    assert "_rev" not in adopted.to_document()


@pytest.mark.unit
def test_change_exposes_owner_revision_and_embedded_transitions() -> None:
    change = Change(
        id="owner-1",
        seq="7-g1",
        doc={"_id": "owner-1", "_rev": "3-r", "transitions": {"accept_patient_reports": {"ok": False}}},
    )

    assert change.owner_revision == "3-r"
    assert change.embedded_transitions() == {
        "accept_patient_reports": TransitionOutcome(last_rev=None, seq=None, ok=False)
    }
    assert Change(id="owner-2").embedded_transitions() is None
