from .page import render_page, write_page, section, figure_html
from .tables import valuation_views, format_valuation_table, render_valuation_tables
