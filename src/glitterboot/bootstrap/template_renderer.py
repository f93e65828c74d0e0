# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/glitterboot/bootstrap/template_renderer.py
from jinja2 import Environment, FileSystemLoader, StrictUndefined
from pathlib import Path
import os
import re

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"


def expand_env_vars(value: str) -> str:
    return re.sub(r"\$\{([^}^{]+)\}", lambda m: os.getenv(m.group(1), m.group(0)), value)


class TemplateRenderer:
    def __init__(self, templates_dir: Path = TEMPLATES_DIR):
        self.env = Environment(
            loader=FileSystemLoader(str(templates_dir)),
            autoescape=False,
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )

    def render(self, template_name: str, context: dict) -> str:
        expanded = {k: expand_env_vars(v) if isinstance(v, str) else v for k, v in context.items()}
        tmpl = self.env.get_template(template_name)
        return tmpl.render(**expanded)

    def render_to(self, template_name: str, dest: Path, context: dict) -> Path:
        dest = Path(dest)
        dest.write_text(self.render(template_name, context), encoding="utf-8")
        return dest
