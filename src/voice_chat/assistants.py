"""Read-only catalog of the assistants users can chat with."""

import json
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Union

import structlog
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

logger = structlog.get_logger()


class Assistant(BaseModel):
    """One catalog entry."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    name: str
    voice_tag: str = ""
    accent_color: str = ""
    avatar_color: str = ""
    description: Optional[str] = None


class AssistantCatalog:
    """Immutable lookup table of assistants keyed by id."""

    def __init__(self, assistants: Iterable[Assistant] = ()) -> None:
        self._assistants: Dict[str, Assistant] = {a.id: a for a in assistants}

    @classmethod
    def load(cls, path: Union[str, Path]) -> "AssistantCatalog":
        """Load a catalog document of the form ``{"assistants": [...]}``.

        A missing file gives an empty catalog.
        """
        path = Path(path)
        if not path.exists():
            logger.warning("assistant_catalog_missing", path=str(path))
            return cls()

        document = json.loads(path.read_text(encoding="utf-8"))
        assistants = [Assistant.model_validate(entry) for entry in document.get("assistants", [])]
        logger.info("assistant_catalog_loaded", path=str(path), count=len(assistants))
        return cls(assistants)

    def get(self, assistant_id: str) -> Optional[Assistant]:
        return self._assistants.get(assistant_id)

    def all(self) -> List[Assistant]:
        return list(self._assistants.values())

    def __contains__(self, assistant_id: object) -> bool:
        return assistant_id in self._assistants

    def __iter__(self) -> Iterator[Assistant]:
        return iter(self._assistants.values())

    def __len__(self) -> int:
        return len(self._assistants)
