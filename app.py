import atexit
import os
from flask import Flask, jsonify
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from menu_engine import MenuBoard, BoardStatus
from config import Config  # Import the Config class
import threading
import logging

# --- 1. SETUP THE FLASK APP ---
app = Flask(__name__)
CORS(app)
logging.basicConfig(level=logging.INFO)

# --- 2. CONFIGURE RATE LIMITING ---
limiter = Limiter(
    get_remote_address,
    app=app,
    default_limits=["2000 per day", "300 per hour"], # Fallback
    storage_uri="memory://",
)

# Apply limits from config.py
limit_minute = f"{Config.RATE_LIMIT_PER_MINUTE} per minute"
limit_hour = f"{Config.RATE_LIMIT_PER_HOUR} per hour"
limit_day = f"{Config.RATE_LIMIT_PER_DAY} per day"

# --- 3. LAZY INITIALIZATION SETUP ---
menu_board = None
board_lock = threading.Lock()

def get_board():
    """Creates, starts and returns the MenuBoard (thread-safe)."""
    global menu_board
    if menu_board:
        return menu_board

    with board_lock:
        if menu_board:
            return menu_board

        app.logger.info("FIRST REQUEST: Starting menu board...")
        menu_board = MenuBoard()
        menu_board.start()
        app.logger.info("FIRST REQUEST: Menu board is live.")

        return menu_board

def shutdown_board():
    """Stops the MenuBoard, if one was started."""
    global menu_board
    with board_lock:
        if menu_board:
            menu_board.stop()
            menu_board = None

atexit.register(shutdown_board)

# --- 4. PRESENTATION HELPERS ---

def get_meal_style(category):
    """Looks up the icon/gradient for a meal type, case-insensitively."""
    return dict(Config.MEAL_STYLES.get(category.lower(), Config.DEFAULT_MEAL_STYLE))

def serialize_state(state):
    """Turns a BoardState into the payload the menu screen renders."""
    if state.status == BoardStatus.ERROR:
        return {"status": "error", "as_of": None, "message": state.error_message, "categories": []}

    if state.status != BoardStatus.READY:
        return {"status": "loading", "as_of": None, "message": Config.LOADING_MESSAGE, "categories": []}

    view = state.view
    if view.is_empty:
        return {"status": "empty", "as_of": state.as_of, "message": Config.EMPTY_MESSAGE, "categories": []}

    categories = [
        {
            "name": category,
            "style": get_meal_style(category),
            "items": [
                {"name": record.name, "price": record.price}
                for record in view.groups[category]
            ]
        }
        for category in view.categories
    ]
    return {"status": "ready", "as_of": state.as_of, "message": None, "categories": categories}

# --- 5. HEALTH CHECK ROUTE ---
@app.route("/")
def health_check():
    """A simple route to confirm the server is running."""
    return jsonify({"status": "healthy", "message": "Canteen Menu Board API is running."})

# --- 6. API ENDPOINTS ---
@app.route("/api/menu", methods=["GET"])
@limiter.limit(limit_minute) # Apply rate limits
@limiter.limit(limit_hour)
@limiter.limit(limit_day)
def api_menu():
    try:
        board = get_board()
        return jsonify(serialize_state(board.state))

    except Exception as e:
        app.logger.error(f"Error in /api/menu: {e}")
        return jsonify({"error": "An internal error occurred."}), 500

# --- 7. START THE SERVER ---
if __name__ == "__main__":
    app.logger.info("Starting Flask development server...")
    get_board()
    # Use 0.0.0.0 to be accessible on the network
    app.run(host='0.0.0.0', debug=False, port=int(os.environ.get("PORT", 5000)))
