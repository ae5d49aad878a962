import threading
import requests
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from datetime import date
from typing import Callable, List, Mapping, Optional, Tuple
from config import Config

logger = logging.getLogger(__name__)


class FetchFailure(Exception):
    """Raised when the menu sheet cannot be retrieved."""


@dataclass(frozen=True)
class MenuRecord:
    date: str
    category: str
    name: str
    price: str


@dataclass(frozen=True)
class MenuView:
    """Today's records grouped by meal type, with meal types in display order."""
    categories: Tuple[str, ...] = ()
    groups: Mapping[str, Tuple[MenuRecord, ...]] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def is_empty(self):
        return not self.categories


class BoardStatus:
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


@dataclass(frozen=True)
class BoardState:
    status: str
    view: Optional[MenuView] = None
    as_of: Optional[str] = None
    error_message: Optional[str] = None


# --- PIPELINE STAGES ---

def fetch_menu_csv(url=Config.MENU_CSV_URL, timeout=Config.API_TIMEOUT):
    """Downloads the published menu sheet and returns the body as text."""
    try:
        resp = requests.get(url, timeout=timeout)
        resp.raise_for_status()
        if not 200 <= resp.status_code < 300:
            raise FetchFailure(f"Unexpected status {resp.status_code} fetching menu from {url}")
    except requests.exceptions.Timeout as e:
        raise FetchFailure(f"Timeout fetching menu from {url}") from e
    except requests.exceptions.RequestException as e:
        raise FetchFailure(f"Error fetching menu from {url}: {e}") from e

    # Sheets exports are UTF-8; requests falls back to latin-1 for text/* without a charset
    if "charset" not in resp.headers.get("Content-Type", "").lower():
        resp.encoding = Config.DEFAULT_ENCODING
    return resp.text


def parse_menu_csv(raw: str) -> List[MenuRecord]:
    """
    Parses the sheet export into records, in file order.

    The first line is the header and only fixes the expected field count.
    Rows whose field count differs from the header's are skipped. Fields are
    split on the bare delimiter, so quoted values containing a comma or a
    line break are not supported.
    """
    text = raw.strip()
    if not text:
        return []

    lines = text.split("\n")
    headers = [h.strip() for h in lines[0].split(Config.CSV_DELIMITER)]
    if len(headers) < Config.RECORD_FIELD_COUNT:
        return []

    records = []
    for line in lines[1:]:
        values = [v.strip() for v in line.split(Config.CSV_DELIMITER)]
        if len(values) != len(headers):
            continue
        records.append(MenuRecord(
            date=values[0],
            category=values[1],
            name=values[2],
            price=values[3]
        ))
    return records


def _meal_rank(category):
    if category in Config.MEAL_TYPE_ORDER:
        return Config.MEAL_TYPE_ORDER.index(category)
    return Config.UNLISTED_MEAL_RANK


def select_todays_menu(records, today: str) -> MenuView:
    """Keeps records dated `today` and groups them by meal type in display order."""
    groups = {}
    for record in records:
        if record.date != today:
            continue
        if record.category not in groups:
            groups[record.category] = []
        groups[record.category].append(record)

    # sorted() is stable, so unlisted meal types keep their first-seen order
    categories = tuple(sorted(groups, key=_meal_rank))
    return MenuView(
        categories=categories,
        groups=MappingProxyType({c: tuple(items) for c, items in groups.items()})
    )


def format_menu_date(day: date) -> str:
    """Human-readable "as of" label, e.g. 'Friday, 16 October 2026'."""
    return Config.DATE_LABEL_FORMAT.format(day=day)


# --- SCHEDULER ---

class MenuBoard:
    """
    Keeps today's menu current: runs fetch -> parse -> select on start and
    then every refresh interval, exposing the latest result as a BoardState.

    Refresh cycles run on their own daemon threads and are allowed to
    overlap. The state slot is replaced whole by whichever cycle finishes
    last, which is not necessarily the one that started last.
    """

    def __init__(
        self,
        fetcher: Optional[Callable[[], str]] = None,
        today_func: Optional[Callable[[], date]] = None,
        interval: float = Config.REFRESH_INTERVAL_SECONDS
    ):
        self.fetcher = fetcher or fetch_menu_csv
        self.today_func = today_func or date.today
        self.interval = interval

        self._state = BoardState(status=BoardStatus.IDLE)
        self._state_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._ticker = None
        self._workers = []

    @property
    def state(self) -> BoardState:
        with self._state_lock:
            return self._state

    @property
    def active(self):
        return self._ticker is not None and not self._stop_event.is_set()

    def _set_state(self, new_state):
        """Replaces the exposed state. Returns False once the board is stopped."""
        with self._state_lock:
            if self._stop_event.is_set():
                return False
            self._state = new_state
            return True

    def refresh(self):
        """Runs one full refresh cycle in the calling thread."""
        if not self._set_state(BoardState(status=BoardStatus.LOADING)):
            return self.state

        try:
            day = self.today_func()
            today = day.isoformat()
            logger.info(f"Refreshing menu for {today}...")

            raw = self.fetcher()
            records = parse_menu_csv(raw)
            view = select_todays_menu(records, today)

            new_state = BoardState(
                status=BoardStatus.READY,
                view=view,
                as_of=format_menu_date(day)
            )
            logger.info(
                f"Menu refresh complete. {len(records)} records parsed, "
                f"{sum(len(items) for items in view.groups.values())} for today "
                f"in {len(view.categories)} meal types."
            )
        except Exception as e:
            logger.error(f"Error refreshing menu: {e}", exc_info=True)
            new_state = BoardState(
                status=BoardStatus.ERROR,
                error_message=Config.ERROR_MESSAGE
            )

        if not self._set_state(new_state):
            logger.info("Menu board stopped during refresh; discarding result.")
        return self.state

    def _start_refresh(self):
        """Launches a refresh cycle on a background thread."""
        if not self._set_state(BoardState(status=BoardStatus.LOADING)):
            return None
        worker = threading.Thread(
            target=self.refresh,
            daemon=True,
            name="MenuRefresh"
        )
        self._workers = [w for w in self._workers if w.is_alive()]
        self._workers.append(worker)
        worker.start()
        return worker

    def _tick(self):
        while not self._stop_event.wait(self.interval):
            logger.debug("Refresh interval elapsed.")
            self._start_refresh()

    def start(self):
        """Starts the board: refreshes now, then on every interval."""
        if self._ticker is not None:
            logger.warning("Menu board already started.")
            return

        logger.info(f"Starting menu board (refresh every {self.interval}s)...")
        self._start_refresh()

        self._ticker = threading.Thread(
            target=self._tick,
            daemon=True,
            name="MenuTicker"
        )
        self._ticker.start()

    def stop(self):
        """Stops the ticker. In-flight refreshes finish but are not applied."""
        with self._state_lock:
            self._stop_event.set()
        if self._ticker is not None:
            self._ticker.join()
        self._workers = []
        logger.info("Menu board stopped.")
