"""Catalog item models.

Defines the four browsable domains, their closed category sets, and the
immutable item records loaded from the bundled catalog data.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

ALL_CATEGORIES = "All"


class Domain(str, Enum):
    """Item kinds. Values double as the remote favorites keys."""
    SKILLS = "skills"
    MCP_SERVERS = "mcpServers"
    TOOLS = "tools"
    PLUGINS = "plugins"

    @classmethod
    def parse(cls, value: str) -> "Domain":
        """Accept either the enum value or a friendly alias."""
        key = value.strip()
        aliases = {
            "skill": cls.SKILLS,
            "server": cls.MCP_SERVERS,
            "servers": cls.MCP_SERVERS,
            "mcp": cls.MCP_SERVERS,
            "mcp-servers": cls.MCP_SERVERS,
            "mcpservers": cls.MCP_SERVERS,
            "tool": cls.TOOLS,
            "plugin": cls.PLUGINS,
        }
        for member in cls:
            if member.value == key or member.value.lower() == key.lower():
                return member
        if key.lower() in aliases:
            return aliases[key.lower()]
        raise ValueError(f"Unknown domain: {value!r}")

    @property
    def label(self) -> str:
        return _DOMAIN_LABELS[self]


_DOMAIN_LABELS = {
    Domain.SKILLS: "Agent Skills",
    Domain.MCP_SERVERS: "MCP Servers",
    Domain.TOOLS: "AI Coding Tools",
    Domain.PLUGINS: "Plugins",
}


class SourceFacet(str, Enum):
    """Plugin provenance filter."""
    ALL = "all"
    OFFICIAL = "official"
    COMMUNITY = "community"


class InstallType(str, Enum):
    """How an MCP server is distributed."""
    NPM = "npm"
    PIP = "pip"
    DOCKER = "docker"
    BINARY = "binary"


CATEGORIES: Dict[Domain, Tuple[str, ...]] = {
    Domain.SKILLS: (
        "Development",
        "Document Processing",
        "Design & Creative",
        "Communication",
        "Testing",
        "DevOps",
        "Project Management",
    ),
    Domain.MCP_SERVERS: (
        "Cloud Platforms",
        "Databases",
        "Developer Tools",
        "Knowledge & Memory",
        "Monitoring",
        "Security",
        "Other",
    ),
    Domain.TOOLS: (
        "IDE",
        "CLI",
        "Agent Framework",
        "Cloud Platform",
        "Open Source",
    ),
    Domain.PLUGINS: (
        "Development",
        "Productivity",
        "Security",
        "Automation",
        "Languages",
        "AI / ML",
        "Testing",
        "Utilities",
        "Workflow",
    ),
}


def categories_for(domain: Domain, include_all: bool = True) -> List[str]:
    """Selectable categories for a domain, "All" first."""
    cats = list(CATEGORIES[domain])
    return [ALL_CATEGORIES] + cats if include_all else cats


@dataclass(frozen=True)
class CatalogItem:
    """Fields shared by every catalog entry."""
    id: str
    name: str
    description: str
    category: str
    tags: Tuple[str, ...] = field(default_factory=tuple)
    author: str = ""
    github_url: Optional[str] = None
    website: Optional[str] = None

    domain = None  # set per subclass

    def search_fields(self) -> List[str]:
        """Texts a free-text query is matched against."""
        return [self.name, self.description, *self.tags]

    @property
    def link(self) -> Optional[str]:
        return self.github_url or self.website

    @classmethod
    def _common(cls, data: dict) -> Dict[str, Any]:
        return {
            "id": str(data["id"]),
            "name": data.get("name", ""),
            "description": data.get("description", ""),
            "category": data.get("category", ""),
            "tags": tuple(data.get("tags", [])),
            "author": data.get("author", ""),
            "github_url": data.get("githubUrl"),
            "website": data.get("website"),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CatalogItem":
        return cls(**cls._common(data))

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "tags": list(self.tags),
            "author": self.author,
        }
        if self.github_url:
            data["githubUrl"] = self.github_url
        if self.website:
            data["website"] = self.website
        return data


@dataclass(frozen=True)
class Skill(CatalogItem):
    """Reusable agent instructions installed into a skills folder."""
    domain = Domain.SKILLS


@dataclass(frozen=True)
class MCPServer(CatalogItem):
    """Model Context Protocol server."""
    stars: int = 0
    install_type: InstallType = InstallType.NPM
    package: Optional[str] = None

    domain = Domain.MCP_SERVERS

    def search_fields(self) -> List[str]:
        # Servers are matched on author instead of tags
        return [self.name, self.description, self.author]

    @classmethod
    def from_dict(cls, data: dict) -> "MCPServer":
        return cls(
            **cls._common(data),
            stars=int(data.get("stars", 0)),
            install_type=InstallType(data.get("installType", "npm")),
            package=data.get("package"),
        )

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["stars"] = self.stars
        data["installType"] = self.install_type.value
        if self.package:
            data["package"] = self.package
        return data


@dataclass(frozen=True)
class Tool(CatalogItem):
    """IDE, CLI or platform for AI-assisted coding."""
    open_source: bool = False

    domain = Domain.TOOLS

    @classmethod
    def from_dict(cls, data: dict) -> "Tool":
        return cls(**cls._common(data), open_source=bool(data.get("openSource", False)))

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["openSource"] = self.open_source
        return data


@dataclass(frozen=True)
class Plugin(CatalogItem):
    """Agent plugin, published officially or by the community."""
    source: SourceFacet = SourceFacet.COMMUNITY
    install_command: Optional[str] = None

    domain = Domain.PLUGINS

    @classmethod
    def from_dict(cls, data: dict) -> "Plugin":
        source = SourceFacet(data.get("source", "community"))
        if source is SourceFacet.ALL:
            raise ValueError("Plugin source must be 'official' or 'community'")
        return cls(
            **cls._common(data),
            source=source,
            install_command=data.get("installCommand"),
        )

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["source"] = self.source.value
        if self.install_command:
            data["installCommand"] = self.install_command
        return data


ITEM_TYPES = {
    Domain.SKILLS: Skill,
    Domain.MCP_SERVERS: MCPServer,
    Domain.TOOLS: Tool,
    Domain.PLUGINS: Plugin,
}
