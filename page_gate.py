import logging

from config_client import ConfigClient, ConfigError
from schemas import PAGES, PageSettings

logger = logging.getLogger(__name__)

PAGE_SETTINGS_KEY = "page_settings"


class PageDisabled(Exception):
    def __init__(self, page: str):
        super().__init__(f"Page {page} is disabled")
        self.page = page


class PageGate:
    """Decides whether a public page may be served.

    Reads page_settings on every check. Only an explicit ``false`` hides a
    page; a missing document, a failed fetch or an unreadable flag leaves
    that page visible. Each flag is read on its own, so one bad flag never
    re-enables another page.
    """

    def __init__(self, client: ConfigClient):
        self.client = client

    def settings(self) -> PageSettings:
        try:
            value = self.client.fetch_document(PAGE_SETTINGS_KEY)
        except ConfigError as e:
            logger.warning("Page settings unavailable, allowing all pages: %s", e)
            return PageSettings()
        if value is None:
            return PageSettings()
        if not isinstance(value, dict):
            logger.warning("Page settings are not an object, allowing all pages")
            return PageSettings()

        flags = {}
        for page in PAGES:
            flag = value.get(page, True)
            if not isinstance(flag, bool):
                logger.warning("Ignoring invalid %s flag in page settings: %r", page, flag)
                continue
            flags[page] = flag
        return PageSettings(**flags)

    def is_allowed(self, page: str) -> bool:
        if page not in PAGES:
            return True
        return getattr(self.settings(), page) is not False

    def require(self, page: str) -> None:
        if not self.is_allowed(page):
            logger.info("Page %s is disabled", page)
            raise PageDisabled(page)
