from __future__ import annotations

from dataclasses import dataclass

from infodoc.services.info_docs import InfoDocService


@dataclass(frozen=True)
class ApiDeps:
    service: InfoDocService
