from __future__ import annotations

from infodoc.api.handlers.deps import ApiDeps
from infodoc.api.schemas import InfoDocResponse

COMPONENT_ID = "api.get_info_doc"


async def get_info_doc_handler(*, owner_id: str, api_deps: ApiDeps) -> InfoDocResponse | None:
    info_doc = await api_deps.service.get(owner_id)
    if info_doc is None:
        return None
    return InfoDocResponse.from_info_doc(info_doc)
