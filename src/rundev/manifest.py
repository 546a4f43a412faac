"""package.json schema.

Only the fields rundev consults are modelled; every other key in the
manifest is ignored.
"""

from __future__ import annotations

import json

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from rundev.errors import ManifestInvalidError


class Engines(BaseModel):
    """The ``engines`` object of package.json."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    node: str | None = None
    npm: str | None = None
    yarn: str | None = None
    pnpm: str | None = None


class PackageJson(BaseModel):
    """Validated snapshot of the fields rundev reads from package.json."""

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    package_manager: str | None = Field(default=None, alias="packageManager")
    engines: Engines | None = None


def parse_manifest(content: str) -> PackageJson:
    """Parse and validate raw package.json text.

    Raises:
        ManifestInvalidError: If the text is not JSON or does not match the schema.
    """
    try:
        data = json.loads(content)
    except ValueError as e:
        raise ManifestInvalidError(f"package.json is not valid JSON: {e}") from e

    try:
        return PackageJson.model_validate(data)
    except ValidationError as e:
        fields = ", ".join(
            ".".join(str(part) for part in err["loc"]) or "<root>" for err in e.errors()
        )
        raise ManifestInvalidError(f"package.json has invalid fields: {fields}") from e


__all__ = ["Engines", "PackageJson", "parse_manifest"]
