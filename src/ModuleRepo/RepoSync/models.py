# === NAVMAP v1 ===
# {
#   "module": "ModuleRepo.RepoSync.models",
#   "purpose": "Pydantic schema for registry module descriptors and JSON decoders",
#   "sections": [
#     {"id": "module-descriptor", "name": "ModuleDescriptor", "anchor": "class-module-descriptor", "kind": "class"},
#     {"id": "installed-module", "name": "InstalledModule", "anchor": "class-installed-module", "kind": "class"},
#     {"id": "decode-catalog", "name": "decode_catalog", "anchor": "function-decode-catalog", "kind": "function"},
#     {"id": "decode-module", "name": "decode_module", "anchor": "function-decode-module", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""
Pydantic v2 models for registry payloads.

The registry publishes descriptors with many more fields than the sync
engine consumes.  :class:`ModuleDescriptor` types the fields the engine and
its common consumers read, and keeps everything else verbatim in
``model_extra`` so nothing is lost on a round trip.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from .versions import ReleaseIdentifier, parse_latest_release

__all__ = [
    "ModuleDescriptor",
    "InstalledModule",
    "decode_catalog",
    "decode_module",
]


class ModuleDescriptor(BaseModel):
    """One module as published by the registry.

    Attributes:
        name: Unique identifier (the module's package name).
        description: Human-readable description.
        latest_release: Raw ``"<code>-<name>"`` string; may be absent.
        releases: Full release history, only present after a per-module fetch.
        releases_loaded: ``True`` once the per-module fetch has populated
            ``releases``.  Never read from the payload.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(
        extra="allow",
        frozen=True,
        populate_by_name=True,
    )

    name: str = Field(description="Module identifier")
    description: Optional[str] = Field(default="", description="Human-readable description")
    summary: Optional[str] = None
    url: Optional[str] = None
    homepage_url: Optional[str] = Field(default=None, alias="homepageUrl")
    source_url: Optional[str] = Field(default=None, alias="sourceUrl")
    latest_release: Optional[str] = Field(default=None, alias="latestRelease")
    latest_release_time: Optional[str] = Field(default=None, alias="latestReleaseTime")
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    updated_at: Optional[str] = Field(default=None, alias="updatedAt")
    stargazer_count: Optional[int] = Field(default=None, alias="stargazerCount")
    hide: bool = False
    releases: Optional[List[Any]] = None
    releases_loaded: bool = Field(default=False, exclude=True)

    @field_validator("releases_loaded", mode="before")
    @classmethod
    def ignore_payload_flag(cls, v: Any) -> bool:
        return False

    # Only ``name`` is strict; a null or off-type optional field must not
    # reject the whole catalog.
    @field_validator(
        "description",
        "summary",
        "url",
        "homepage_url",
        "source_url",
        "latest_release",
        "latest_release_time",
        "created_at",
        "updated_at",
        mode="before",
    )
    @classmethod
    def drop_non_text(cls, v: Any) -> Optional[str]:
        return v if isinstance(v, str) else None

    @field_validator("stargazer_count", mode="before")
    @classmethod
    def drop_non_integer(cls, v: Any) -> Optional[int]:
        if isinstance(v, bool) or not isinstance(v, int):
            return None
        return v

    @field_validator("hide", mode="before")
    @classmethod
    def default_hide(cls, v: Any) -> bool:
        return v if isinstance(v, bool) else False

    @field_validator("releases", mode="before")
    @classmethod
    def drop_non_list(cls, v: Any) -> Optional[List[Any]]:
        return v if isinstance(v, list) else None

    @property
    def latest_version(self) -> Optional[ReleaseIdentifier]:
        """The parsed ``latestRelease`` value, or ``None`` if it is unusable."""
        return parse_latest_release(self.latest_release)

    def with_releases_loaded(self) -> ModuleDescriptor:
        """Return a copy flagged as carrying its full release history."""
        return self.model_copy(update={"releases_loaded": True})


@dataclass(frozen=True)
class InstalledModule:
    """Version information for a locally installed module."""

    package_name: str
    version_code: int
    version_name: str


_CATALOG_ADAPTER: TypeAdapter[List[ModuleDescriptor]] = TypeAdapter(List[ModuleDescriptor])


def decode_catalog(body: Union[bytes, str]) -> List[ModuleDescriptor]:
    """Decode a ``modules.json`` body into descriptors, preserving payload order.

    Raises:
        pydantic.ValidationError: If the body is not a JSON array of descriptors.
    """

    return _CATALOG_ADAPTER.validate_json(body)


def decode_module(body: Union[bytes, str]) -> ModuleDescriptor:
    """Decode a ``module/<name>.json`` body into a single descriptor."""

    return ModuleDescriptor.model_validate_json(body)
