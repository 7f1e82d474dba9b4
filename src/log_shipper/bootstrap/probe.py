"""Bootstrap connectivity probe with bounded retry and template provisioning."""

import json
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from log_shipper.bootstrap.templates import default_template
from log_shipper.config import ProbeConfig
from log_shipper.errors import (
    ProbeExhaustedError,
    StoreUnavailableError,
    TemplateNotFoundError,
    TemplateProvisioningError,
)
from log_shipper.patterns.backoff import BackoffPolicy, RetryExhaustedError
from log_shipper.store.base import BulkStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ProbeState:
    """Progress of one probe run.

    Attributes:
        attempts_made: Number of pings sent so far.
        connected: Whether a ping succeeded.
    """

    attempts_made: int = 0
    connected: bool = False


class ConnectivityProbe:
    """One-shot check that the store is reachable and the index template exists.

    Pings up to ``1 + max_retries`` times with exponential backoff. After a
    successful ping, and if provisioning is enabled, the named template is
    fetched and created when the store reports it missing.

    Args:
        store: Store collaborator to probe.
        config: Probe settings.
        index_prefix: Prefix naming the template ("template_<prefix>") and its index pattern.

    Example:
        ```python
        probe = ConnectivityProbe(store, ProbeConfig(max_retries=5))
        state = await probe.run()
        assert state.connected
        ```
    """

    def __init__(
        self,
        store: BulkStore,
        config: ProbeConfig | None = None,
        index_prefix: str = "logs",
    ) -> None:
        self._store = store
        self._config = config or ProbeConfig()
        self._index_prefix = index_prefix
        self._policy = BackoffPolicy(
            max_retries=self._config.max_retries,
            factor=self._config.backoff_factor,
            min_delay=self._config.min_delay,
            max_delay=self._config.max_delay,
            # Any ping failure means unreachable.
            is_transient=lambda exc: True,
        )
        self._state = ProbeState()

    @property
    def state(self) -> ProbeState:
        """State of the current or last run."""
        return self._state

    @property
    def template_name(self) -> str:
        """Name of the template this probe provisions."""
        return self._config.template_name or f"template_{self._index_prefix}"

    @property
    def template_body(self) -> dict[str, Any]:
        """Template body created when the template is missing."""
        if self._config.template_body is not None:
            return self._config.template_body
        return default_template(self._index_prefix)

    async def run(self) -> ProbeState:
        """Probe the store, then provision the template if enabled.

        Returns:
            ProbeState: Final state with ``connected`` set.

        Raises:
            ProbeExhaustedError: If no ping succeeded.
            TemplateProvisioningError: If the template could not be fetched or created.
        """
        self._state = ProbeState()

        try:
            await self._policy.execute(self._ping_once)
        except RetryExhaustedError as exc:
            last_error = exc.__cause__ or exc
            raise self._exhausted(last_error) from last_error

        self._state.connected = True
        self._log("probe_connected", attempts=self._state.attempts_made)

        if self._config.ensure_template:
            await self.ensure_template()

        return self._state

    async def ensure_template(self) -> None:
        """Create the template when the store reports it missing.

        Raises:
            TemplateProvisioningError: On any fetch error other than not-found,
                or if the create call fails.
        """
        name = self.template_name
        try:
            await self._store.get_template(name)
        except TemplateNotFoundError:
            pass
        except Exception as exc:
            raise TemplateProvisioningError(name, f"fetch failed: {exc}") from exc
        else:
            self._log("template_present", template=name)
            return

        try:
            await self._store.create_template(name, self.template_body)
        except Exception as exc:
            raise TemplateProvisioningError(name, f"create failed: {exc}") from exc

        self._log("template_created", template=name)

    async def _ping_once(self) -> bool:
        self._state.attempts_made += 1
        try:
            reachable = await self._store.ping()
        except Exception as exc:
            self._log(
                "probe_ping_failed",
                level=logging.WARNING,
                attempt=self._state.attempts_made,
                error=repr(exc),
            )
            raise

        if not reachable:
            self._log(
                "probe_ping_failed",
                level=logging.WARNING,
                attempt=self._state.attempts_made,
                error="unreachable",
            )
            raise StoreUnavailableError("Store ping reported unreachable")
        return True

    def _exhausted(self, exc: BaseException) -> ProbeExhaustedError:
        attempts = self._state.attempts_made
        error = ProbeExhaustedError(
            f"Store unreachable after {attempts} ping attempt(s): {exc}"
        )
        error.attempt_count = attempts
        self._log("probe_exhausted", level=logging.ERROR, attempts=attempts, error=repr(exc))
        return error

    def _log(self, event: str, level: int = logging.INFO, **fields: Any) -> None:
        log_entry = {
            "event": event,
            **fields,
            "timestamp": datetime.now(UTC).isoformat(),
        }
        logger.log(level, json.dumps(log_entry))
