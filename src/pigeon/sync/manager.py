# =============================================================================
# Poll Manager
# =============================================================================
# The periodic driver. Every check_interval_seconds it polls every account,
# concurrently, and routes the outcome:
#
#   provider.fetch() ──ok──> DedupEngine.process() ──> notifier.notify()
#          │                          └──> HistoryStore.save()
#          └──error──> FailurePolicy.on_failure() ──(3rd)──> notifier.notify_error()
#
# Key responsibilities:
#   - Own per-account state (AccountState) from add to remove
#   - Start/stop/restart the timer (restart when the interval setting changes)
#   - Never run two polls of the same account at once
#   - Tear everything down deterministically: cancel the shared signal,
#     unsubscribe from settings, cancel tasks, release providers
# =============================================================================

import asyncio
import logging
from dataclasses import replace
from typing import Callable, Coroutine, Iterable

import aiosqlite
import httpx

from pigeon.cancellation import Cancellable
from pigeon.config import Settings
from pigeon.core import Account, Message
from pigeon.credentials import CredentialSource
from pigeon.events import Subscription
from pigeon.notify import Notifier
from pigeon.providers import MailProvider, create_http_client, create_provider
from pigeon.storage import HistoryStore
from pigeon.sync.dedup import DedupEngine
from pigeon.sync.failures import FailurePolicy
from pigeon.sync.state import AccountState

logger = logging.getLogger(__name__)

# Builds the provider for an account; tests substitute fakes
ProviderFactory = Callable[..., MailProvider]


class PollManager:
    """
    Periodically checks all accounts for new mail.

    Usage:
        >>> manager = PollManager(settings, notifier, credentials=KeyringCredentials())
        >>> await manager.start(config.accounts.values())
        >>> # ... runs in the background ...
        >>> await manager.stop()

    Attributes:
        settings: Live notification options.
        cancellable: Shared cancellation signal, fired by stop().
    """

    def __init__(
        self,
        settings: Settings,
        notifier: Notifier,
        *,
        credentials: CredentialSource,
        history_store: HistoryStore | None = None,
        http_client: httpx.AsyncClient | None = None,
        provider_factory: ProviderFactory = create_provider,
    ) -> None:
        self.settings = settings
        self.cancellable = Cancellable()
        self._notifier = notifier
        self._credentials = credentials
        self._store = history_store
        self._owns_http = http_client is None
        self._http = http_client or create_http_client()
        self._provider_factory = provider_factory

        self._dedup = DedupEngine()
        self._policy = FailurePolicy(notifier.notify_error)
        self._history: dict[str, list[str]] = {}
        self._accounts: dict[str, AccountState] = {}
        self._subscriptions: list[Subscription] = []
        self._timer: asyncio.Task | None = None
        self._background: set[asyncio.Task] = set()
        self._running = False

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def accounts(self) -> dict[str, AccountState]:
        """Per-account state, keyed by account name."""
        return self._accounts

    @property
    def history(self) -> dict[str, list[str]]:
        """In-memory notification history, keyed by mailbox."""
        return self._history

    async def start(self, accounts: Iterable[Account], *, poll_now: bool = True) -> None:
        """
        Load history, register accounts and start the timer.

        Args:
            accounts: Accounts to watch. Disabled ones are skipped.
            poll_now: Run a first round immediately instead of waiting one
                      interval.
        """
        if self._running:
            logger.warning("PollManager already running")
            return
        self._running = True

        # A previous stop() fired the signal and closed our HTTP client
        if self.cancellable.is_cancelled:
            self.cancellable = Cancellable()
        if self._owns_http and self._http.is_closed:
            self._http = create_http_client()

        if self._store is not None:
            self._history = await self._store.load()

        self._subscriptions.append(self.settings.changed.connect(self._on_setting_changed))

        for account in accounts:
            self._register(account)

        if not self._accounts:
            logger.info("No accounts to check")
            return

        self._start_timer()
        if poll_now:
            self._spawn(self.check_all())

    async def stop(self) -> None:
        """Cancel everything in flight and release all resources."""
        if not self._running:
            return
        self._running = False
        logger.info("Stopping poll manager")

        self.cancellable.cancel()

        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions.clear()

        self._stop_timer()

        for task in list(self._background):
            task.cancel()
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
        self._background.clear()

        for state in list(self._accounts.values()):
            await state.destroy()
        self._accounts.clear()

        if self._owns_http:
            await self._http.aclose()

    # =========================================================================
    # Accounts
    # =========================================================================

    def add_account(self, account: Account) -> AccountState | None:
        """
        Start watching an account and poll it right away.

        Returns:
            The new AccountState, or None if the account is disabled or
            already watched.
        """
        state = self._register(account)
        if state is None:
            return None

        if self._running:
            if len(self._accounts) == 1:
                self._start_timer()
            self._poll(state)
        return state

    async def remove_account(self, name: str) -> None:
        """Stop watching an account and forget its notification history."""
        state = self._accounts.pop(name, None)
        if state is None:
            return

        await state.destroy()
        self._dedup.forget(state.mailbox, self._history)
        if self._store is not None:
            await self._store.clear(state.mailbox)

        logger.info(f"Removed account {name}")
        if not self._accounts:
            self._stop_timer()

    def _register(self, account: Account) -> AccountState | None:
        if not account.enabled:
            logger.debug(f"Skipping disabled account {account.name}")
            return None
        if account.name in self._accounts:
            logger.warning(f"Account {account.name} is already registered")
            return None

        cancellable = self.cancellable.child()
        provider = self._provider_factory(
            account,
            credentials=self._credentials,
            http_client=self._http,
            cancellable=cancellable,
        )
        state = AccountState(account=account, provider=provider, cancellable=cancellable)
        self._accounts[account.name] = state
        logger.debug(f"Registered {account} via {provider!r}")
        return state

    # =========================================================================
    # Polling
    # =========================================================================

    async def check_all(self) -> list[Message]:
        """
        Poll every account concurrently and wait for all of them.

        Accounts whose previous poll is still running are skipped.

        Returns:
            All newly announced messages of this round.
        """
        tasks = []
        for state in list(self._accounts.values()):
            if state.is_polling:
                logger.debug(f"{state.mailbox}: previous poll still running, skipping")
                continue
            tasks.append(self._poll(state))

        results = await asyncio.gather(*tasks, return_exceptions=True)

        new_messages: list[Message] = []
        for result in results:
            if isinstance(result, list):
                new_messages.extend(result)
        return new_messages

    async def scan_inbox(self, state: AccountState) -> list[Message]:
        """
        Poll one account and announce whatever is new.

        Errors never escape: they are handed to the FailurePolicy.
        """
        try:
            messages = await state.provider.fetch(self.settings.options)
            # Results that arrive after teardown are dropped, not announced
            state.cancellable.raise_if_cancelled()
        except Exception as e:
            self._policy.on_failure(state, e)
            return []

        self._policy.on_success(state)

        new_messages = self._dedup.process(
            state.mailbox,
            messages,
            self._history,
            notify=lambda message: self._emit(state, message),
        )
        await self._persist(state.mailbox)
        return new_messages

    def _poll(self, state: AccountState) -> asyncio.Task:
        state.task = asyncio.create_task(
            self.scan_inbox(state),
            name=f"poll-{state.account.name}",
        )
        return state.task

    def _emit(self, state: AccountState, message: Message) -> None:
        if not message.link:
            fallback = state.provider.fallback_url()
            if fallback:
                message = replace(message, link=fallback)
        # The id is already recorded as notified; a broken notifier must not
        # keep the history from being written
        try:
            self._notifier.notify(state.mailbox, message)
        except Exception as e:
            logger.error(f"{state.mailbox}: notifier failed for {message.id}: {e}")

    async def _persist(self, mailbox: str) -> None:
        if self._store is None:
            return
        try:
            await self._store.save(mailbox, self._history.get(mailbox, []))
        except aiosqlite.Error as e:
            logger.warning(f"Could not save notification history for {mailbox}: {e}")

    # =========================================================================
    # Timer
    # =========================================================================

    def _start_timer(self) -> None:
        self._stop_timer()
        interval = self.settings.options.check_interval_seconds
        self._timer = asyncio.create_task(self._tick(interval), name="poll-timer")
        logger.info(f"Started pecking (every {interval}s)")

    def _stop_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def _tick(self, interval: int) -> None:
        while True:
            await asyncio.sleep(interval)
            self._spawn(self.check_all())

    def _restart_timer(self) -> None:
        self._stop_timer()
        if self._accounts:
            self._start_timer()

    def _on_setting_changed(self, key: str) -> None:
        if key == "check_interval_seconds" and self._running:
            self._restart_timer()

    def _spawn(self, coro: Coroutine) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task
