"""Internal constants shared across the library."""

BASE_URL = "https://public-api.nello.io/v1"
AUTH_URL = "https://auth.nello.io/oauth/token/"
USER_AGENT = "pynello/1.0"

DEFAULT_IOT_STATE = "iot.0.services.custom_nello"
DEFAULT_EVENTS_MAX_COUNT = 30

#: Refresh intervals at or below this many seconds are ignored.
MIN_REFRESH_SECONDS = 10

WEBHOOK_ACTIONS: tuple[str, ...] = ("swipe", "geo", "tw", "deny")

ICAL_MARKERS: tuple[str, ...] = ("BEGIN:VCALENDAR", "END:VCALENDAR", "BEGIN:VEVENT", "END:VEVENT")
