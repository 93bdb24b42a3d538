"""IMAP connection management - opens an authenticated session with retries."""

import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

import aioimaplib

from mailgate.utils.config_manager import AccountConfig, RetryConfig
from mailgate.utils.errors import (
    ErrorHandler,
    IMAPConnectionError,
    InvalidConfigError,
    InvalidCredentialsError,
    MissingCredentialsError,
    NetworkTimeoutError,
    ResourceReleaseError,
)
from mailgate.utils.logging import async_log_call, get_logger

from .constants import IMAPResponse, Timeouts

logger = get_logger(__name__)

ClientFactory = Callable[[AccountConfig], aioimaplib.IMAP4]
Sleeper = Callable[[float], Awaitable[None]]


@dataclass
class ConnectionStats:
    """Tracks IMAP connection attempts."""

    attempts: int = 0
    failures: int = 0
    connections_created: int = 0
    cleanup_failures: int = 0
    last_connect_duration: Optional[float] = None


def create_client(account: AccountConfig) -> aioimaplib.IMAP4:
    """Build an unconnected aioimaplib client for the account."""

    client_class = aioimaplib.IMAP4_SSL if account.use_tls else aioimaplib.IMAP4
    return client_class(
        host=account.imap_server,
        port=account.imap_port,
        timeout=account.network_timeout,
    )


class IMAPAuthorizer:
    """Opens a logged-in IMAP session, retrying with a linear backoff.

    The authorizer keeps no reference to the session it returns; the caller
    owns it and is responsible for logging out.
    """

    def __init__(
        self,
        account: AccountConfig,
        retry: Optional[RetryConfig] = None,
        client_factory: Optional[ClientFactory] = None,
        sleep: Sleeper = asyncio.sleep,
    ):
        """Initialize the authorizer.

        Args:
            account: Server address, credentials and timeouts
            retry: Attempt count and backoff unit (defaults to one attempt)
            client_factory: Builds a fresh client per attempt
            sleep: Coroutine used to wait between attempts
        """
        self.account = account
        self.retry = retry or RetryConfig()
        self._client_factory = client_factory or create_client
        self._sleep = sleep
        self._stats = ConnectionStats()

    def get_stats(self) -> ConnectionStats:
        """Get current connection statistics."""
        return self._stats

    def _resolve_attempts(self, max_attempts: Optional[int]) -> int:
        if max_attempts is None:
            max_attempts = self.retry.max_attempts

        if isinstance(max_attempts, bool) or not isinstance(max_attempts, int):
            raise InvalidConfigError(
                "max_attempts must be an integer",
                details={"max_attempts": repr(max_attempts)},
            )
        if max_attempts < 1:
            raise InvalidConfigError(
                "max_attempts must be at least 1",
                details={"max_attempts": max_attempts},
            )
        return max_attempts

    def _check_credentials(self) -> None:
        if not self.account.email or not self.account.password.get_secret_value():
            raise MissingCredentialsError(
                "Email and password are required to log in",
                details={"server": self.account.imap_server},
            )

    @async_log_call
    async def authorize(self, max_attempts: Optional[int] = None) -> aioimaplib.IMAP4:
        """Connect and log in, retrying on failure.

        Waits ``attempt * backoff_unit`` seconds after each failed attempt
        except the last.

        Args:
            max_attempts: Number of attempts, at least 1 (defaults to the
                retry configuration)

        Returns:
            Connected and authenticated aioimaplib client

        Raises:
            InvalidConfigError: If max_attempts is not a positive integer
            MissingCredentialsError: If email or password is empty
            IMAPConnectionError: If every attempt failed
        """
        attempts = self._resolve_attempts(max_attempts)
        self._check_credentials()
        server = self.account.imap_server
        last_error: Optional[Exception] = None

        for attempt in range(1, attempts + 1):
            self._stats.attempts += 1
            logger.info(
                f"[{attempt}/{attempts}] Connecting to IMAP server",
                extra={"server": server, "port": self.account.imap_port},
            )

            client = None
            start_time = time.monotonic()

            try:
                client = self._client_factory(self.account)
                await self._open(client)

            except Exception as e:
                last_error = e
                self._stats.failures += 1
                logger.warning(
                    f"IMAP connection attempt {attempt}/{attempts} failed: {e}",
                    extra={"server": server, "error_type": type(e).__name__},
                )

                if client is not None:
                    await self._release(client)

                if attempt < attempts:
                    delay = attempt * self.retry.backoff_unit
                    logger.info(f"Waiting {delay:g}s before retry")
                    await self._sleep(delay)
                continue

            except BaseException:
                # Cancelled mid-attempt: drop the half-open client before unwinding
                if client is not None:
                    await self._release(client)
                raise

            duration = time.monotonic() - start_time
            self._stats.connections_created += 1
            self._stats.last_connect_duration = duration
            logger.info(
                "IMAP connection established",
                extra={
                    "server": server,
                    "attempt": attempt,
                    "duration_seconds": round(duration, 2),
                },
            )
            return client

        error = IMAPConnectionError(
            f"Failed to connect to {server} after {attempts} attempt(s): {last_error}",
            details={
                "server": server,
                "attempts": attempts,
                "last_error": str(last_error),
            },
        )
        ErrorHandler.handle(error, "IMAP authorize", log_traceback=False)
        raise error from last_error

    async def _open(self, client: aioimaplib.IMAP4) -> None:
        """Wait for the greeting and log in.

        Raises:
            NetworkTimeoutError: If the greeting or login times out
            InvalidCredentialsError: If the server rejects the login
        """
        account = self.account

        try:
            await asyncio.wait_for(
                client.wait_hello_from_server(), timeout=account.greeting_timeout
            )
            response = await asyncio.wait_for(
                client.login(account.email, account.password.get_secret_value()),
                timeout=account.connection_timeout,
            )

        except asyncio.TimeoutError as e:
            raise NetworkTimeoutError(
                "IMAP connection timeout", details={"server": account.imap_server}
            ) from e

        if response.result != IMAPResponse.OK:
            error_msg = response.lines[0] if response.lines else "No response"
            if isinstance(error_msg, bytes):
                error_msg = error_msg.decode(errors="replace")

            raise InvalidCredentialsError(
                f"IMAP login rejected: {error_msg}",
                details={"server": account.imap_server, "response": str(error_msg)},
            )

    async def _release(self, client: aioimaplib.IMAP4) -> None:
        """Log out a half-open client and close its socket.

        aioimaplib leaves the transport open when logout fails or is refused
        (no greeting yet), so the transport is always closed afterwards.
        Errors are logged and dropped.
        """

        try:
            await asyncio.wait_for(client.logout(), timeout=Timeouts.IMAP_LOGOUT)

        except Exception as e:
            self._record_release_failure(e)

        finally:
            self._close_transport(client)

    def _close_transport(self, client: aioimaplib.IMAP4) -> None:
        protocol = getattr(client, "protocol", None)
        transport = getattr(protocol, "transport", None)
        if transport is None:
            return

        try:
            transport.close()
        except Exception as e:
            self._record_release_failure(e)

    def _record_release_failure(self, error: Exception) -> None:
        self._stats.cleanup_failures += 1
        release_error = ResourceReleaseError(
            f"Error closing IMAP connection: {error}",
            details={"server": self.account.imap_server},
        )
        logger.debug(release_error.message, extra=release_error.details)


async def authorize(
    account: AccountConfig,
    max_attempts: Optional[int] = None,
    retry: Optional[RetryConfig] = None,
) -> aioimaplib.IMAP4:
    """Open a logged-in IMAP session for ``account``.

    Shortcut for ``IMAPAuthorizer(account, retry).authorize(max_attempts)``.
    Without ``max_attempts`` the attempt count comes from ``retry``.
    """
    return await IMAPAuthorizer(account, retry).authorize(max_attempts)
