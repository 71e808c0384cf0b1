from __future__ import annotations

from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict


class OrmModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class UpdateModel(BaseModel):
    """
    Partial update body: only fields the client sent are applied.

    An explicit null is kept only for columns listed in `clearable`; for the
    others it is treated as "not sent".
    """

    model_config = ConfigDict(extra="forbid")

    clearable: ClassVar[frozenset[str]] = frozenset()

    def changes(self) -> dict[str, Any]:
        sent = self.model_dump(exclude_unset=True)
        return {k: v for k, v in sent.items() if v is not None or k in self.clearable}
