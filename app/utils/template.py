from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from app.config import settings

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"


def format_rupiah(value) -> str:
    return f"Rp {float(value or 0):,.2f}"


env = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=select_autoescape(["html"]),
    undefined=StrictUndefined,
)
env.filters["rupiah"] = format_rupiah
env.globals["store_name"] = settings.STORE_NAME


def render_template(template_path: str, **context) -> str:
    """Render an email template; a missing variable raises instead of rendering blank."""
    return env.get_template(template_path).render(**context)
