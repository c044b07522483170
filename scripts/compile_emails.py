#!/usr/bin/env python3
"""Build the runtime email templates.

Each Jinja2 source under app/templates/emails/ is rendered with placeholder
values, its CSS is inlined (mail clients drop <style> blocks) and the result
is minified into app/templates/emails/compiled/<name>.html, with the
placeholders turned back into Jinja2 expressions for render time.

    python scripts/compile_emails.py
"""

import sys
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import css_inline  # noqa: E402
import minify_html  # noqa: E402
from jinja2 import Environment, FileSystemLoader, select_autoescape  # noqa: E402

TEMPLATES_DIR = project_root / "app" / "templates" / "emails"
COMPILED_DIR = TEMPLATES_DIR / "compiled"

# Source template -> variables filled in at send time
TEMPLATES = {
    "password-reset.j2": ["reset_url", "expires_minutes"],
}

# Placeholders look like URLs so the minifier keeps href values quoted
PLACEHOLDER = "https://placeholder.handleproof.invalid/{}"


def _restore_variables(html: str, variables: list[str]) -> str:
    for name in variables:
        marker = PLACEHOLDER.format(name)
        expression = "{{ " + name + " }}"
        # The minifier may have dropped the quotes around an attribute value
        html = html.replace(f"={marker}>", f'="{expression}">')
        html = html.replace(f"={marker} ", f'="{expression}" ')
        html = html.replace(marker, expression)
    return html


def compile_template(env: Environment, source: str, variables: list[str]) -> Path:
    """Render, inline, minify and write one template; returns the output path."""
    placeholders = {name: PLACEHOLDER.format(name) for name in variables}
    html = env.get_template(source).render(**placeholders)
    html = minify_html.minify(css_inline.inline(html), minify_css=True)

    target = COMPILED_DIR / f"{Path(source).stem}.html"
    target.write_text(_restore_variables(html, variables), encoding="utf-8")
    return target


def main() -> int:
    COMPILED_DIR.mkdir(exist_ok=True)
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=select_autoescape(["html", "xml", "j2"]),
    )

    missing = [name for name in TEMPLATES if not (TEMPLATES_DIR / name).exists()]
    for name in missing:
        print(f"missing template: {name}", file=sys.stderr)

    for name, variables in TEMPLATES.items():
        if name in missing:
            continue
        target = compile_template(env, name, variables)
        print(f"{name} -> {target.relative_to(project_root)}")

    return 1 if missing else 0


if __name__ == "__main__":
    sys.exit(main())
