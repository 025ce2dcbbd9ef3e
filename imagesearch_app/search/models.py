"""Search result data model and its JSON shape."""

from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any


@dataclass
class CopyrightInfo:
    """Licensing metadata attached to every result."""
    status: str = "unknown"                 # "free" or "unknown"
    license: str = "Various"
    description: str = "Copyright varies. Check source."
    can_use_commercially: bool = False
    requires_attribution: bool = True

    @property
    def is_free(self) -> bool:
        return self.status == "free"

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "CopyrightInfo":
        if not data:
            return cls()
        return cls(
            status=data.get("status", "unknown"),
            license=data.get("license", "Various"),
            description=data.get("description", "Copyright varies. Check source."),
            can_use_commercially=bool(data.get("can_use_commercially", False)),
            requires_attribution=bool(data.get("requires_attribution", True)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "license": self.license,
            "description": self.description,
            "canUseCommercially": self.can_use_commercially,
            "requiresAttribution": self.requires_attribution,
        }


@dataclass
class ImageResult:
    """
    One image in the response, possibly found by several sources.

    `sources` starts as [source] and only ever grows; `source_count` mirrors
    its length. `original_title` / `original_source` keep the first
    contributor's values while `title` is regenerated on every merge.
    """
    id: str
    title: str
    display_url: str
    download_url: str
    source: str
    width: int
    height: int
    size_estimate: str
    source_page_url: Optional[str] = None
    sources: List[str] = field(default_factory=list)
    source_count: int = 1
    copyright: CopyrightInfo = field(default_factory=CopyrightInfo)
    photographer: str = "Unknown"
    tags: List[str] = field(default_factory=list)
    original_title: str = ""
    original_source: str = ""
    hashed_id: Optional[str] = None

    def __post_init__(self):
        if not self.sources:
            self.sources = [self.source]
        self.source_count = len(self.sources)
        if not self.original_title:
            self.original_title = self.title
        if not self.original_source:
            self.original_source = self.source

    @property
    def area(self) -> int:
        return (self.width or 0) * (self.height or 0)

    def token_payload(self) -> Dict[str, Any]:
        """Subset carried inside the opaque token."""
        return {
            "id": self.id,
            "title": self.title,
            "url": self.display_url,
            "downloadUrl": self.download_url,
            "sourcePageUrl": self.source_page_url or self.download_url,
            "source": self.source,
            "width": self.width,
            "height": self.height,
            "photographer": self.photographer,
        }

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "title": self.title,
            "displayUrl": self.display_url,
            "downloadUrl": self.download_url,
            "sourcePageUrl": self.source_page_url,
            "source": self.source,
            "sources": list(self.sources),
            "sourceCount": self.source_count,
            "width": self.width,
            "height": self.height,
            "sizeEstimate": self.size_estimate,
            "copyright": self.copyright.to_dict(),
            "photographer": self.photographer,
            "tags": list(self.tags),
            "originalTitle": self.original_title,
            "originalSource": self.original_source,
        }
        if self.hashed_id is not None:
            data["hashedId"] = self.hashed_id
        return data
