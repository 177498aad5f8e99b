from __future__ import annotations

from typing import Any, Iterable, Type, TypeVar

from pydantic import BaseModel, ValidationError

from .errors import ValidationFailed, Violation

M = TypeVar("M", bound=BaseModel)


def violations_from(errors: Iterable[dict], skip: int = 0) -> list[Violation]:
    """Turn pydantic error dicts into violations.

    ``skip`` drops leading location parts, e.g. FastAPI's ``"body"`` or
    ``"path"`` prefix. An empty location means the payload as a whole.
    """
    violations = []
    for err in errors:
        loc = tuple(err.get("loc", ()))
        if err["type"] == "json_invalid":
            # the location holds a character offset, not a field
            field = "body"
        else:
            field = ".".join(str(part) for part in loc[skip:]) or (str(loc[0]) if loc else "body")
        violations.append(Violation(field=field, rule=err["type"], message=err["msg"]))
    return violations


def validate(schema: Type[M], payload: Any) -> M:
    """Check ``payload`` against every rule of ``schema``.

    Returns the typed instance, or raises ``ValidationFailed`` carrying all
    violations. Never touches storage.
    """
    try:
        return schema.model_validate(payload)
    except ValidationError as e:
        raise ValidationFailed(violations_from(e.errors())) from e


def with_path_params(payload: Any, **params: Any) -> Any:
    """Merge path parameters into a JSON body before validation.

    Path values win over body fields of the same name. Non-object bodies
    are passed through untouched so validation reports them.
    """
    if payload is None:
        return dict(params)
    if not isinstance(payload, dict):
        return payload
    return {**payload, **params}
