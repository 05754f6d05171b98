"""Built-in .gitignore templates."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

GITIGNORE_TEMPLATES: dict[str, str] = {
    "Visual Studio / C#": """# Visual Studio
.vs/
bin/
obj/
*.user
*.suo
*.cache
*.dll
*.pdb
*.exe
packages/
*.nupkg
TestResults/
""",
    "Node.js": """# Node
node_modules/
dist/
build/
.env
.env.local
*.log
.DS_Store
coverage/
""",
    "Python": """# Python
__pycache__/
*.py[cod]
.env
venv/
.venv/
dist/
*.egg-info/
.pytest_cache/
""",
    "Unity": """# Unity
[Ll]ibrary/
[Tt]emp/
[Oo]bj/
[Bb]uild/
[Bb]uilds/
[Ll]ogs/
*.csproj
*.unityproj
*.sln
*.suo
*.user
""",
    "JetBrains": """# JetBrains IDE
.idea/
*.iml
*.iws
out/
""",
    "macOS": """# macOS
.DS_Store
.AppleDouble
.LSOverride
._*
""",
    "Windows": """# Windows
Thumbs.db
ehthumbs.db
Desktop.ini
$RECYCLE.BIN/
""",
}


def render_templates(names: Sequence[str]) -> str:
    """Concatenate the named templates, skipping unknown names."""
    return "\n".join(GITIGNORE_TEMPLATES[name] for name in names if name in GITIGNORE_TEMPLATES)


def write_gitignore(directory: Path, names: Sequence[str]) -> bool:
    """Create or append to ``directory/.gitignore``.

    Returns:
        True if an existing file was appended to, False if it was created.
    """
    path = directory / ".gitignore"
    content = render_templates(names)
    existed = path.exists()
    if existed:
        existing = path.read_text(encoding="utf-8")
        content = existing + "\n" + content
    path.write_text(content, encoding="utf-8")
    return existed
