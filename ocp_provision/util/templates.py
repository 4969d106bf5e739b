"""
Template loading and rendering utilities using Jinja2.
"""

import shutil
from datetime import datetime
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined, Template

DEFAULT_TEMPLATES = Path(__file__).parent.parent / "templates"


class TemplateLoader:
    """
    Loads and renders Jinja2 templates.

    Templates placed in <workspace>/templates override the bundled ones.
    """

    def __init__(self, workspace_root: Path | None = None):
        """
        Initialize template loader.

        Args:
            workspace_root: Directory that may hold a templates/ override (default: cwd)
        """
        self.workspace_root = Path(workspace_root or Path.cwd())
        self.workspace_templates = self.workspace_root / "templates"
        self.default_templates = DEFAULT_TEMPLATES
        self._env: Environment | None = None
        self._template_cache: dict[str, Template] = {}

    @property
    def env(self) -> Environment:
        """Get or create the Jinja2 environment (cached)."""
        if self._env is None:
            template_dirs = []

            if self.workspace_templates.exists():
                template_dirs.append(str(self.workspace_templates))

            if self.default_templates.exists():
                template_dirs.append(str(self.default_templates))

            if not template_dirs:
                raise FileNotFoundError("No template directories found")

            self._env = Environment(
                loader=FileSystemLoader(template_dirs),
                trim_blocks=True,
                lstrip_blocks=True,
                keep_trailing_newline=True,
                undefined=StrictUndefined,
            )
            self._env.filters["join_csv"] = lambda items: ",".join(items or [])

        return self._env

    def load_template(self, template_name: str) -> Template:
        if template_name not in self._template_cache:
            self._template_cache[template_name] = self.env.get_template(template_name)
        return self._template_cache[template_name]

    def render(self, template_name: str, context: dict) -> str:
        """
        Render a template to a string.

        Args:
            template_name: Template name (e.g., "vpc-summary.txt.j2")
            context: Dictionary of template variables

        Returns:
            Rendered text
        """
        context = dict(context)
        context.setdefault("timestamp", datetime.now().strftime("%Y-%m-%d %H:%M:%S"))
        return self.load_template(template_name).render(**context)

    def render_template(self, template_name: str, context: dict, output_file: Path) -> str:
        """Render a template and write it to output_file. Returns the rendered text."""
        rendered = self.render(template_name, context)
        output_file = Path(output_file)
        output_file.parent.mkdir(parents=True, exist_ok=True)
        output_file.write_text(rendered)
        return rendered

    def copy_default_templates_to_workspace(self) -> None:
        """
        Copy bundled templates to the workspace for customization.

        An existing templates/ directory is moved to templates.backup first.
        """
        if not self.default_templates.exists():
            raise FileNotFoundError(f"Default templates not found at {self.default_templates}")

        if self.workspace_templates.exists():
            backup_dir = self.workspace_root / "templates.backup"
            if backup_dir.exists():
                shutil.rmtree(backup_dir)
            shutil.move(str(self.workspace_templates), str(backup_dir))

        shutil.copytree(str(self.default_templates), str(self.workspace_templates))
        self._env = None
        self._template_cache.clear()
