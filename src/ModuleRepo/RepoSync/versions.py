# === NAVMAP v1 ===
# {
#   "module": "ModuleRepo.RepoSync.versions",
#   "purpose": "Release identifiers, latestRelease parsing, and the upgrade predicate",
#   "sections": [
#     {"id": "release-identifier", "name": "ReleaseIdentifier", "anchor": "class-release-identifier", "kind": "class"},
#     {"id": "parse-latest-release", "name": "parse_latest_release", "anchor": "function-parse-latest-release", "kind": "function"},
#     {"id": "is-upgradable", "name": "is_upgradable", "anchor": "function-is-upgradable", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Release identifiers and the upgradability rule.

Registry descriptors advertise their newest build as a single string of the
form ``"<code>-<name>"`` (for example ``"100-1.2.0"``).  Only the first ``-``
separates the two parts, so names may themselves contain dashes
(``"42-2.0-beta-1"`` yields code ``42`` and name ``"2.0-beta-1"``).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

__all__ = ["ReleaseIdentifier", "parse_latest_release", "is_upgradable"]

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


@dataclass(frozen=True)
class ReleaseIdentifier:
    """One published build of a module: numeric code plus display name."""

    code: int
    name: str

    def upgradable(self, version_code: int, version_name: str) -> bool:
        """Return ``True`` when this release supersedes the installed version.

        A strictly higher code always wins.  An equal code with a different
        display name also counts, covering rebuilt releases that kept the code.
        """
        return is_upgradable(self, version_code, version_name)

    def __str__(self) -> str:
        return f"{self.name} ({self.code})"


def is_upgradable(latest: ReleaseIdentifier, version_code: int, version_name: str) -> bool:
    """Evaluate the upgrade predicate for ``latest`` against an installed version."""

    return latest.code > version_code or (
        latest.code == version_code and latest.name != version_name
    )


def _parse_int64(text: str) -> Optional[int]:
    stripped = text.strip()
    if stripped != text or not stripped:
        return None
    body = stripped[1:] if stripped[0] in "+-" else stripped
    if not body.isascii() or not body.isdigit():
        return None
    value = int(stripped)
    if value < _INT64_MIN or value > _INT64_MAX:
        return None
    return value


def parse_latest_release(raw: Optional[str]) -> Optional[ReleaseIdentifier]:
    """Parse a ``latestRelease`` string into a :class:`ReleaseIdentifier`.

    Returns ``None`` when ``raw`` is null or empty, has no ``-`` separator, or
    its code part is not a signed 64-bit integer.
    """

    if not raw:
        return None
    parts = raw.split("-", 1)
    if len(parts) < 2:
        return None
    code = _parse_int64(parts[0])
    if code is None:
        return None
    return ReleaseIdentifier(code=code, name=parts[1])
