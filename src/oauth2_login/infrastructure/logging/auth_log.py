"""Authentication audit log and module debug log."""

import logging

authentication_logger = logging.getLogger("oauth2_login.authentication")
debug_logger = logging.getLogger("oauth2_login.debug")

LOG_PREFIX = "OAuth2 Client"


class AuthenticationLog:
    """Writes authentication events and, when activated, flow debug traces"""

    def __init__(self, debugging_activated: bool = False):
        self.debugging_activated = debugging_activated

    def add_authentication_log(self, message: str) -> None:
        authentication_logger.info(message)

    def add_debug_log(self, message: str) -> None:
        if self.debugging_activated:
            debug_logger.info(f"{LOG_PREFIX}: {message}")
