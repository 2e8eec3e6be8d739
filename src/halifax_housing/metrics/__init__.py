from .turnover import classify_directions, turnover, daily_rolling
from .time_on_market import time_to_sale, time_on_market_by_week
from .price_change import price_changes, recent_change_by_status
from .assessment import assessment_vs_sale
from .history import recent_sale_histories
