from scalpdesk.config import get_settings
from scalpdesk.desk import Desk

# The one desk served by this API process. It owns the store, the session
# context and the feed jobs; routes only read from it or enqueue events.
settings = get_settings()
desk = Desk(settings)
