from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, TypeVar

import pydantic

from tubeheads_backend.errors import DocumentDecodeError

ModelT = TypeVar("ModelT", bound=pydantic.BaseModel)


def decode_document(model: type[ModelT], collection: str, doc: Mapping[str, Any]) -> ModelT:
    """
    Validate a raw store document into a typed entity.

    Malformed documents raise DocumentDecodeError; fields are never filled with
    fallback values to paper over a bad row.
    """

    try:
        return model.model_validate(dict(doc))
    except pydantic.ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or '<root>'}: {err['msg']}" for err in exc.errors()
        )
        raise DocumentDecodeError(collection, str(doc.get("id") or "") or None, problems) from exc


def decode_documents(model: type[ModelT], collection: str, docs: Iterable[Mapping[str, Any]]) -> list[ModelT]:
    return [decode_document(model, collection, doc) for doc in docs]
