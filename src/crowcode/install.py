"""Install command generation.

Turns catalog entries into copy-pasteable shell commands. Pure formatting:
nothing here runs the commands.
"""

from __future__ import annotations

import platform
from typing import Dict, Iterable, List, Optional

from .catalog.models import InstallType, MCPServer, Plugin, Skill, Tool

SKILL_TARGETS: Dict[str, tuple] = {
    # target -> (project path, global path)
    "claude": (".claude/skills", "~/.claude/skills"),
    "cursor": (".cursor/skills", "~/.cursor/skills"),
    "codex": (".codex/skills", "~/.codex/skills"),
    "generic": (".ai/skills", "~/.ai/skills"),
}

PLATFORMS = ("macos", "linux", "windows")

TOOL_COMMANDS: Dict[str, Dict[str, str]] = {
    "cursor": {
        "macos": "brew install --cask cursor",
        "linux": "curl -fsSL https://download.cursor.sh/install.sh | sh",
        "windows": "winget install Cursor.Cursor",
    },
    "windsurf": {
        "macos": "brew install --cask windsurf",
        "linux": "curl -fsSL https://codeium.com/windsurf/install.sh | sh",
        "windows": "winget install Codeium.Windsurf",
    },
    "ollama": {
        "macos": "brew install ollama",
        "linux": "curl -fsSL https://ollama.com/install.sh | sh",
        "windows": "winget install Ollama.Ollama",
    },
    "claude": {
        "macos": "npm install -g @anthropic-ai/claude-code",
        "linux": "npm install -g @anthropic-ai/claude-code",
        "windows": "npm install -g @anthropic-ai/claude-code",
    },
}


def detect_platform() -> str:
    system = platform.system().lower()
    if system.startswith("win"):
        return "windows"
    if system == "darwin":
        return "macos"
    return "linux"


def skill_install_command(
    skill_name: str,
    github_url: str,
    global_install: bool = False,
    target: str = "claude",
) -> str:
    """Clone a skill repository into the target agent's skills folder."""
    project_path, global_path = SKILL_TARGETS.get(target, SKILL_TARGETS["claude"])
    path = global_path if global_install else project_path
    repo_name = github_url.rstrip("/").split("/")[-1]
    if repo_name.endswith(".git"):
        repo_name = repo_name[: -len(".git")]
    repo_name = repo_name or skill_name
    return f"mkdir -p {path} && cd {path} && git clone {github_url} {repo_name}"


def mcp_install_command(server_name: str, install_type: InstallType, package: Optional[str] = None) -> str:
    pkg = package or server_name
    install_type = InstallType(install_type)
    if install_type is InstallType.PIP:
        return f"pip install {pkg}"
    if install_type is InstallType.DOCKER:
        return f"docker pull {pkg}"
    if install_type is InstallType.BINARY:
        return f"curl -fsSL https://install.{pkg}.dev | sh"
    return f"npm install -g {pkg}"


def tool_install_command(tool_id: str, platform_name: str) -> str:
    command = TOOL_COMMANDS.get(tool_id, {}).get(platform_name)
    return command or f"# Install {tool_id} from official website"


def item_install_command(item, global_install: bool = False, target: str = "claude",
                         platform_name: Optional[str] = None) -> Optional[str]:
    """Install command for any catalog item, or ``None`` when there is none."""
    if isinstance(item, Skill):
        if not item.github_url:
            return None
        return skill_install_command(item.name, item.github_url, global_install, target)
    if isinstance(item, MCPServer):
        return mcp_install_command(item.id, item.install_type, item.package)
    if isinstance(item, Tool):
        return tool_install_command(item.id, platform_name or detect_platform())
    if isinstance(item, Plugin):
        return item.install_command
    return None


def setup_script(skills: Iterable[str], mcp_servers: Iterable[str]) -> str:
    """Bash script that prepares skill folders and lists what gets installed."""
    skill_lines = "\n".join(f'echo "Installing skill: {s}"' for s in skills)
    server_lines = "\n".join(f'echo "Installing MCP server: {s}"' for s in mcp_servers)
    return f"""#!/bin/bash
# crowcode setup script
# Generated setup script for your AI development environment

set -e

echo "crowcode - Setup Script"
echo "================================"

# Create directories
mkdir -p ~/.claude/skills
mkdir -p ~/.cursor/skills
mkdir -p ~/.mcp

# Install Skills
echo ""
echo "Installing Skills..."
{skill_lines}

# Install MCP Servers
echo ""
echo "Installing MCP Servers..."
{server_lines}

echo ""
echo "Setup complete!"
echo "Restart your AI coding tool to load the new skills."
"""


class CommandBuilder:
    """Accumulates install commands into one script."""

    def __init__(self) -> None:
        self.commands: List[str] = []

    def add_skill(self, skill_name: str, github_url: str, global_install: bool = False,
                  target: str = "claude") -> "CommandBuilder":
        self.commands.append(skill_install_command(skill_name, github_url, global_install, target))
        return self

    def add_mcp(self, server_name: str, install_type: InstallType,
                package: Optional[str] = None) -> "CommandBuilder":
        self.commands.append(mcp_install_command(server_name, install_type, package))
        return self

    def add_tool(self, tool_id: str, platform_name: Optional[str] = None) -> "CommandBuilder":
        self.commands.append(tool_install_command(tool_id, platform_name or detect_platform()))
        return self

    def add_comment(self, comment: str) -> "CommandBuilder":
        self.commands.append(f"# {comment}")
        return self

    def add_empty_line(self) -> "CommandBuilder":
        self.commands.append("")
        return self

    def build(self) -> str:
        return "\n".join(self.commands)

    def build_script(self) -> str:
        return "#!/bin/bash\nset -e\n\n" + self.build()


def install_script(skills: Iterable[Skill], mcp_servers: Iterable[MCPServer], global_install: bool = False,
                   target: str = "claude") -> str:
    """Runnable script with the real install command of every item given."""
    builder = CommandBuilder()
    skills, mcp_servers = list(skills), list(mcp_servers)
    if skills:
        builder.add_comment("Skills")
        for skill in skills:
            if skill.github_url:
                builder.add_skill(skill.name, skill.github_url, global_install, target)
            else:
                builder.add_comment(f"{skill.name}: no repository to clone")
    if mcp_servers:
        if skills:
            builder.add_empty_line()
        builder.add_comment("MCP servers")
        for server in mcp_servers:
            builder.add_mcp(server.id, server.install_type, server.package)
    return builder.build_script() + "\n"
