import logging
import os
from datetime import datetime
from typing import Dict, List, Optional
import plotly.graph_objects as go
import plotly.io as pio
from jinja2 import Environment, select_autoescape

logger = logging.getLogger(__name__)

pio.templates.default = "plotly_white"

PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{{ title }}</title>
<script src="https://cdn.plot.ly/plotly-2.35.2.min.js"></script>
<style>
  :root { --ink: #0f1b2c; --bg: #f8fafc; --muted: #64748b; }
  body { font-family: 'Space Grotesk', sans-serif; color: var(--ink); background: var(--bg);
         max-width: 1400px; margin: 0 auto; padding: 2rem; }
  h1 { font-size: 2.5rem; margin-bottom: 0.25rem; }
  h2 { margin-top: 3rem; letter-spacing: -0.02em; }
  .generated, .headline { color: var(--muted); }
  .card { background: white; padding: 1.5rem; border-radius: 12px; border: 1px solid #e2e8f0;
          box-shadow: 0 4px 6px -1px rgba(0, 0, 0, 0.05); margin-bottom: 1.5rem; }
  table.listing-table { border-collapse: collapse; width: 100%; }
  table.listing-table th, table.listing-table td { padding: 0.4rem 0.6rem; border-bottom: 1px solid #e2e8f0; }
</style>
</head>
<body>
<h1>{{ title }}</h1>
<p class="generated">Generated {{ generated }}</p>
{% if headline %}<p class="headline">{{ headline }}</p>{% endif %}
{% for section in sections %}
<h2>{{ section.title }}</h2>
<div class="card">
{% if section.text %}<p>{{ section.text }}</p>{% endif %}
{% for chart in section.charts %}{{ chart | safe }}{% endfor %}
{% for table in section.tables %}{{ table | safe }}{% endfor %}
</div>
{% endfor %}
</body>
</html>
"""

_env = Environment(autoescape=select_autoescape(default_for_string=True, default=True))


def figure_html(fig: go.Figure) -> str:
    """Chart markup without the plotly bundle, which the page loads once."""
    return pio.to_html(fig, full_html=False, include_plotlyjs=False)


def section(title: str, charts: Optional[List[go.Figure]] = None,
            tables: Optional[List[str]] = None, text: Optional[str] = None) -> Dict:
    return {
        'title': title,
        'text': text,
        'charts': [figure_html(f) for f in (charts or [])],
        'tables': list(tables or []),
    }


def render_page(title: str, sections: List[Dict], headline: Optional[str] = None,
                generated: Optional[datetime] = None) -> str:
    generated = generated or datetime.now()
    return _env.from_string(PAGE_TEMPLATE).render(
        title=title,
        headline=headline,
        generated=generated.strftime("%Y-%m-%d %H:%M"),
        sections=sections,
    )


def write_page(markup: str, output_path: str) -> str:
    directory = os.path.dirname(output_path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(output_path, 'w', encoding='utf-8') as f:
        f.write(markup)
    logger.info(f"Report written to {output_path}")
    return output_path
