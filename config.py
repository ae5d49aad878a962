"""
Configuration constants for the Canteen Menu Board
"""

class Config:
    """Application configuration and constants"""

    # Published menu sheet (CSV export)
    MENU_CSV_URL = (
        "https://docs.google.com/spreadsheets/d/e/"
        "2PACX-1vS8DeSZU_HNJzfbB9PjwaBB1DQbeKdAA7Aeng6jIJbb9coUkaWwyOSBM3j_Bxgp6la5mYkfOawWrp5W"
        "/pub?output=csv"
    )

    # API settings
    API_TIMEOUT = 10
    DEFAULT_ENCODING = "utf-8"

    # Refresh settings
    REFRESH_INTERVAL_SECONDS = 5 * 60

    # CSV layout: Date, Meal_Type, Item_Name, Price
    CSV_DELIMITER = ","
    RECORD_FIELD_COUNT = 4

    # Meal periods, in display order
    MEAL_TYPE_ORDER = ["Breakfast", "Lunch", "Snacks", "Dinner"]
    UNLISTED_MEAL_RANK = 999

    # "As of" label, e.g. "Friday, 16 October 2026"
    DATE_LABEL_FORMAT = "{day:%A}, {day.day} {day:%B} {day:%Y}"

    # User-facing messages
    LOADING_MESSAGE = "Loading today's menu..."
    ERROR_MESSAGE = "Unable to load menu. Please try again later."
    EMPTY_MESSAGE = "Menu not updated yet."

    # Per-category styling, keyed by lower-cased meal type
    MEAL_STYLES = {
        "breakfast": {"icon": "sun", "gradient": "from-orange-50 to-amber-50"},
        "lunch": {"icon": "utensils", "gradient": "from-red-50 to-orange-50"},
        "snacks": {"icon": "coffee", "gradient": "from-amber-50 to-yellow-50"},
        "dinner": {"icon": "moon", "gradient": "from-slate-50 to-gray-50"},
    }
    DEFAULT_MEAL_STYLE = {"icon": "sparkles", "gradient": "from-pink-50 to-rose-50"}

    # Rate limiting
    RATE_LIMIT_PER_DAY = 2000
    RATE_LIMIT_PER_HOUR = 300
    RATE_LIMIT_PER_MINUTE = 30
