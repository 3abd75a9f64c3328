"""Facade exposing update checks in several calling conventions."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import AsyncIterator
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from functools import partial
from typing import Callable, Generic, TypeVar

from services.update.models import (
    LookupResult,
    UpdateInfo,
    UpdetoError,
    build_app_store_url,
    normalize_country,
)
from services.update.providers import (
    AppStoreProvider,
    ProviderCapability,
    UpdateProvider,
    capabilities_of,
)
from shared.result import Result


_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

Dispatch = Callable[[Callable[[], None]], object]
Operation = Callable[[threading.Event | None], T]

_CHECK_CAPABILITIES = (
    ProviderCapability.STATUS
    | ProviderCapability.STATUS_DETAILED
    | ProviderCapability.INFO
    | ProviderCapability.INFO_DETAILED
)

# Richest tier first; used when a provider lacks the requested operation.
_PREFERENCE = (
    ProviderCapability.INFO_DETAILED,
    ProviderCapability.INFO,
    ProviderCapability.STATUS_DETAILED,
    ProviderCapability.STATUS,
)


class PendingCheck(Generic[T]):
    """Handle for a check started with a completion callback."""

    def __init__(self, future: Future[T], cancel_event: threading.Event) -> None:
        self._future = future
        self._cancel_event = cancel_event

    @property
    def future(self) -> Future[T]:
        return self._future

    def cancel(self) -> None:
        """Stop pending retries and suppress the completion callback."""

        self._cancel_event.set()
        self._future.cancel()

    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def done(self) -> bool:
        return self._future.done()

    def result(self, timeout: float | None = None) -> T:
        return self._future.result(timeout)


class Updeto:
    """Single entry point for update checks, whatever the provider supports.

    The facade reads the provider's :class:`ProviderCapability` flags once and
    derives every operation from the richest tier available, so a custom
    provider that only implements ``check_status`` still answers
    ``check_info_detailed``.  Each operation comes in four shapes:

    * ``check_<op>()`` blocks and returns the value;
    * ``check_<op>_callback(completion)`` runs on a worker thread and calls
      ``completion`` exactly once, optionally through ``dispatch`` (for
      example ``lambda fn: root.after(0, fn)`` to land on a Tk main loop);
    * ``await check_<op>_async()`` suspends until the value is ready;
    * ``async for value in check_<op>_stream()`` yields exactly one value.

    The status-only and info-only shapes never raise: failures collapse into
    ``NO_RESULTS``.  Detailed callback and blocking shapes return a
    :class:`Result`; detailed async and stream shapes raise the
    :class:`UpdetoError`.  A custom provider that raises anything else is
    treated the same way: its exception becomes the error of the detailed
    shapes and collapses into ``NO_RESULTS`` for the simple ones.
    """

    capabilities = _CHECK_CAPABILITIES

    def __init__(
        self,
        provider: UpdateProvider | None = None,
        *,
        executor: Executor | None = None,
        dispatch: Dispatch | None = None,
    ) -> None:
        self._provider = provider if provider is not None else AppStoreProvider.from_environment()
        self._provider_capabilities = capabilities_of(self._provider)
        if not self._provider_capabilities & _CHECK_CAPABILITIES:
            raise TypeError(
                f"{type(self._provider).__name__} does not implement any update check operation"
            )
        self._executor = executor
        self._owns_executor = executor is None
        self._executor_lock = threading.Lock()
        self._closed = False
        self._dispatch = dispatch
        _LOGGER.debug(
            "Using update provider %s with capabilities %s",
            type(self._provider).__name__,
            self._provider_capabilities,
        )

    @property
    def provider(self) -> UpdateProvider:
        return self._provider

    @property
    def provider_capabilities(self) -> ProviderCapability:
        return self._provider_capabilities

    @property
    def bundle_id(self) -> str:
        return self._provider.bundle_id

    @property
    def installed_version(self) -> str:
        return self._provider.installed_version

    @property
    def app_id(self) -> str:
        return self._provider.app_id

    @app_id.setter
    def app_id(self, value: str) -> None:
        self._provider.app_id = value

    @property
    def app_store_url(self) -> str | None:
        return self._provider.app_store_url

    # Blocking shapes -----------------------------------------------------

    def check_status(self) -> LookupResult:
        return self._status(None)

    def check_status_detailed(self) -> Result[LookupResult, UpdetoError]:
        return self._status_detailed(None)

    def check_info(self) -> UpdateInfo:
        return self._info(None)

    def check_info_detailed(self) -> Result[UpdateInfo, UpdetoError]:
        return self._info_detailed(None)

    # Callback shapes -----------------------------------------------------

    def check_status_callback(
        self, completion: Callable[[LookupResult], None], *, dispatch: Dispatch | None = None
    ) -> PendingCheck[LookupResult]:
        return self._with_callback(self._status, completion, dispatch)

    def check_status_detailed_callback(
        self,
        completion: Callable[[Result[LookupResult, UpdetoError]], None],
        *,
        dispatch: Dispatch | None = None,
    ) -> PendingCheck[Result[LookupResult, UpdetoError]]:
        return self._with_callback(self._status_detailed, completion, dispatch)

    def check_info_callback(
        self, completion: Callable[[UpdateInfo], None], *, dispatch: Dispatch | None = None
    ) -> PendingCheck[UpdateInfo]:
        return self._with_callback(self._info, completion, dispatch)

    def check_info_detailed_callback(
        self,
        completion: Callable[[Result[UpdateInfo, UpdetoError]], None],
        *,
        dispatch: Dispatch | None = None,
    ) -> PendingCheck[Result[UpdateInfo, UpdetoError]]:
        return self._with_callback(self._info_detailed, completion, dispatch)

    # Awaitable shapes ----------------------------------------------------

    async def check_status_async(self) -> LookupResult:
        return await self._await(self._status)

    async def check_status_detailed_async(self) -> LookupResult:
        result = await self._await(self._status_detailed)
        return result.unwrap()

    async def check_info_async(self) -> UpdateInfo:
        return await self._await(self._info)

    async def check_info_detailed_async(self) -> UpdateInfo:
        result = await self._await(self._info_detailed)
        return result.unwrap()

    # Single-shot stream shapes -------------------------------------------

    async def check_status_stream(self) -> AsyncIterator[LookupResult]:
        yield await self.check_status_async()

    async def check_status_detailed_stream(self) -> AsyncIterator[LookupResult]:
        yield await self.check_status_detailed_async()

    async def check_info_stream(self) -> AsyncIterator[UpdateInfo]:
        yield await self.check_info_async()

    async def check_info_detailed_stream(self) -> AsyncIterator[UpdateInfo]:
        yield await self.check_info_detailed_async()

    # Lifecycle -----------------------------------------------------------

    def close(self) -> None:
        """Shut down the worker pool if this facade created it.

        Checks already submitted still run and report their completion; new
        callback, async and stream checks raise :class:`RuntimeError`.
        """

        with self._executor_lock:
            self._closed = True
            executor = self._executor
            if self._owns_executor:
                self._executor = None
        if self._owns_executor and executor is not None:
            executor.shutdown(wait=False)

    def __enter__(self) -> "Updeto":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # Operation dispatch --------------------------------------------------

    def _status(self, cancel_event: threading.Event | None) -> LookupResult:
        try:
            tier = self._select(ProviderCapability.STATUS)
            if tier is ProviderCapability.STATUS:
                return self._call("check_status", cancel_event)
            if tier is ProviderCapability.INFO:
                return self._call("check_info", cancel_event).result
            if tier is ProviderCapability.STATUS_DETAILED:
                detailed = self._call_detailed("check_status_detailed", cancel_event)
                return detailed.unwrap_or(LookupResult.NO_RESULTS)
            detailed_info = self._call_detailed("check_info_detailed", cancel_event)
            return detailed_info.map(lambda info: info.result).unwrap_or(LookupResult.NO_RESULTS)
        except Exception:  # misbehaving custom provider
            _LOGGER.exception("Update provider %s failed", type(self._provider).__name__)
            return LookupResult.NO_RESULTS

    def _status_detailed(self, cancel_event: threading.Event | None) -> Result[LookupResult, UpdetoError]:
        try:
            tier = self._select(ProviderCapability.STATUS_DETAILED)
            if tier is ProviderCapability.STATUS_DETAILED:
                return self._call_detailed("check_status_detailed", cancel_event)
            if tier is ProviderCapability.INFO_DETAILED:
                detailed = self._call_detailed("check_info_detailed", cancel_event)
                return detailed.map(lambda info: info.result)
            if tier is ProviderCapability.INFO:
                return Result.ok(self._call("check_info", cancel_event).result)
            return Result.ok(self._call("check_status", cancel_event))
        except Exception as exc:  # misbehaving custom provider
            _LOGGER.exception("Update provider %s failed", type(self._provider).__name__)
            return Result.err(exc)

    def _info(self, cancel_event: threading.Event | None) -> UpdateInfo:
        try:
            tier = self._select(ProviderCapability.INFO)
            if tier is ProviderCapability.INFO:
                return self._call("check_info", cancel_event)
            if tier is ProviderCapability.INFO_DETAILED:
                detailed = self._call_detailed("check_info_detailed", cancel_event)
                return detailed.unwrap_or(self._synthesize_info(LookupResult.NO_RESULTS))
            if tier is ProviderCapability.STATUS_DETAILED:
                status = self._call_detailed("check_status_detailed", cancel_event)
                return self._synthesize_info(status.unwrap_or(LookupResult.NO_RESULTS))
            return self._synthesize_info(self._call("check_status", cancel_event))
        except Exception:  # misbehaving custom provider
            _LOGGER.exception("Update provider %s failed", type(self._provider).__name__)
            return self._synthesize_info(LookupResult.NO_RESULTS)

    def _info_detailed(self, cancel_event: threading.Event | None) -> Result[UpdateInfo, UpdetoError]:
        try:
            tier = self._select(ProviderCapability.INFO_DETAILED)
            if tier is ProviderCapability.INFO_DETAILED:
                return self._call_detailed("check_info_detailed", cancel_event)
            if tier is ProviderCapability.INFO:
                return Result.ok(self._call("check_info", cancel_event))
            if tier is ProviderCapability.STATUS_DETAILED:
                detailed = self._call_detailed("check_status_detailed", cancel_event)
                return detailed.map(self._synthesize_info)
            return Result.ok(self._synthesize_info(self._call("check_status", cancel_event)))
        except Exception as exc:  # misbehaving custom provider
            _LOGGER.exception("Update provider %s failed", type(self._provider).__name__)
            return Result.err(exc)

    def _select(self, requested: ProviderCapability) -> ProviderCapability:
        if self._provider_capabilities & requested:
            return requested
        for tier in _PREFERENCE:
            if self._provider_capabilities & tier:
                return tier
        raise TypeError(f"{type(self._provider).__name__} does not implement any update check operation")

    def _call(self, name: str, cancel_event: threading.Event | None):
        method = getattr(self._provider, name)
        if cancel_event is not None and self._provider_capabilities & ProviderCapability.CANCELLABLE:
            return method(cancel_event=cancel_event)
        return method()

    def _call_detailed(self, name: str, cancel_event: threading.Event | None) -> Result:
        try:
            return self._call(name, cancel_event)
        except UpdetoError as exc:
            return Result.err(exc)

    def _synthesize_info(self, result: LookupResult) -> UpdateInfo:
        app_id: str | None = None
        if result is not LookupResult.NO_RESULTS:
            app_id = self._provider.app_id or None
        country = getattr(self._provider, "country", None)
        return UpdateInfo(
            result=result,
            installed_version=self._provider.installed_version,
            store_version=None,
            app_id=app_id,
            app_store_url=build_app_store_url(app_id),
            bundle_id=self._provider.bundle_id,
            country=normalize_country(country) if isinstance(country, str) else None,
        )

    # Calling conventions -------------------------------------------------

    def _get_executor(self) -> Executor:
        with self._executor_lock:
            if self._closed:
                raise RuntimeError("Update checker is closed")
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="updeto")
            return self._executor

    def _submit(self, operation: Operation[T]) -> tuple[Future[T], threading.Event]:
        cancel_event = threading.Event()
        future = self._get_executor().submit(operation, cancel_event)
        return future, cancel_event

    def _with_callback(
        self,
        operation: Operation[T],
        completion: Callable[[T], None],
        dispatch: Dispatch | None,
    ) -> PendingCheck[T]:
        future, cancel_event = self._submit(operation)
        deliver = dispatch or self._dispatch

        def _on_done(done: Future[T]) -> None:
            if done.cancelled() or cancel_event.is_set():
                _LOGGER.debug("Update check cancelled; completion suppressed")
                return
            value = done.result()
            if deliver is None:
                completion(value)
            else:
                deliver(partial(completion, value))

        future.add_done_callback(_on_done)
        return PendingCheck(future, cancel_event)

    async def _await(self, operation: Operation[T]) -> T:
        future, cancel_event = self._submit(operation)
        try:
            return await asyncio.wrap_future(future)
        except asyncio.CancelledError:
            cancel_event.set()
            future.cancel()
            raise


__all__ = ["Dispatch", "PendingCheck", "Updeto"]
