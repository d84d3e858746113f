"""
Snapshot orchestrator for triggering and tracking create_image actions across servers.
"""
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
import logging
import threading
import time

import httpx

from .models import Action, ActionStatus, OutcomeStatus, Server, SnapshotOutcome
from ..api.client import HCloudClient, extract_error_message
from ..core.exceptions import FetchError, UserCancelled


logger = logging.getLogger(__name__)

WRITE_SCOPE_HINT = "Ensure your API token has write permissions for the project."
MAX_BODY_EXCERPT = 500


def default_prefix(today: Optional[date] = None) -> str:
    """Default snapshot description prefix, e.g. 'snapshot-2024-01-05-'."""
    return f"snapshot-{(today or date.today()).isoformat()}-"


@dataclass
class SnapshotOptions:
    """How snapshots are requested and tracked."""
    description_prefix: str = field(default_factory=default_prefix)
    force: bool = False
    dry_run: bool = False
    wait: bool = False
    poll_interval: float = 2.0            # seconds between status polls
    max_wait: Optional[float] = None      # seconds per action; None waits until terminal
    max_polls: Optional[int] = None
    max_workers: int = 5


def build_request(server: Server, options: SnapshotOptions) -> Dict[str, Any]:
    """Build the create_image request body for a server."""
    body: Dict[str, Any] = {
        'description': f"{options.description_prefix}{server.display_name}",
        'type': 'snapshot',
    }
    if options.force:
        body['force'] = True
    return body


def _mapping(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _optional_int(value: Any) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


class SnapshotOrchestrator:
    """Submits one snapshot per server and tracks each action independently."""

    def __init__(
        self,
        client: HCloudClient,
        options: Optional[SnapshotOptions] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the orchestrator.

        Args:
            client: Authenticated API client
            options: Snapshot options; defaults are used when None
            sleep: Sleep function used between polls
            clock: Monotonic clock used for the wait budget
        """
        self.client = client
        self.options = options or SnapshotOptions()
        self._sleep = sleep
        self._clock = clock
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        """Stop submitting new snapshots and stop waiting on running actions."""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def run(self, servers: Sequence[Server]) -> List[SnapshotOutcome]:
        """Snapshot every server; one failure never stops the others.

        Args:
            servers: Servers to snapshot

        Returns:
            One outcome per server, in input order

        Raises:
            UserCancelled: If interrupted (Ctrl+C); servers not yet started are skipped
        """
        if not servers:
            return []

        outcomes: Dict[int, SnapshotOutcome] = {}

        with ThreadPoolExecutor(max_workers=max(1, self.options.max_workers)) as executor:
            future_to_index = {
                executor.submit(self.process_server, server): index
                for index, server in enumerate(servers)
            }

            try:
                for future in as_completed(future_to_index):
                    index = future_to_index[future]
                    server = servers[index]
                    try:
                        outcomes[index] = future.result()
                    except Exception as e:
                        logger.error(f"Unexpected error snapshotting server {server.resource_id}: {e}")
                        outcomes[index] = SnapshotOutcome(
                            server=server,
                            status=OutcomeStatus.UNKNOWN_FAILURE,
                            description=build_request(server, self.options)['description'],
                            timestamp=datetime.now(),
                            error_message=f"Unexpected error: {e}",
                            duration=0.0,
                        )
            except KeyboardInterrupt:
                logger.warning(
                    f"Snapshot run cancelled after {len(outcomes)} of {len(servers)} servers - "
                    "cancelling pending submissions"
                )
                self.cancel()
                executor.shutdown(wait=False, cancel_futures=True)
                raise UserCancelled()

        results = [outcomes[index] for index in range(len(servers))]

        summary = self.get_operation_summary(results)
        logger.info(
            f"Snapshot run complete: {summary['submitted']} submitted, "
            f"{summary['failed']} failed, {summary['dry_run']} dry-run"
        )
        return results

    def process_server(self, server: Server) -> SnapshotOutcome:
        """Submit (and optionally wait for) the snapshot of one server."""
        start_time = datetime.now()
        started = self._clock()
        body = build_request(server, self.options)
        description = body['description']

        if self.options.dry_run:
            return SnapshotOutcome(
                server=server,
                status=OutcomeStatus.DRY_RUN,
                description=description,
                timestamp=start_time,
                duration=0.0,
            )

        if self.cancelled:
            raise UserCancelled()

        outcome = self._submit(server, body, start_time)

        if self.options.wait and outcome.action is not None:
            outcome.action = self.wait_for_action(outcome.action)

        outcome.duration = self._clock() - started
        return outcome

    def _submit(self, server: Server, body: Dict[str, Any], start_time: datetime) -> SnapshotOutcome:
        description = body['description']
        logger.info(f"Creating snapshot for {server.display_name} (id {server.resource_id})")

        try:
            response = self.client.create_image(server.resource_id, body)
        except httpx.HTTPError as e:
            logger.error(f"Snapshot request for server {server.resource_id} failed: {e}")
            return SnapshotOutcome(
                server=server,
                status=OutcomeStatus.UNKNOWN_FAILURE,
                description=description,
                timestamp=start_time,
                error_message=f"Request failed: {e}",
            )

        return self.classify_response(server, description, response, start_time)

    def classify_response(
        self,
        server: Server,
        description: str,
        response: httpx.Response,
        start_time: datetime,
    ) -> SnapshotOutcome:
        """Turn a create_image response into an outcome record."""
        status_code = response.status_code
        try:
            payload = response.json()
        except ValueError:
            payload = None

        if not 200 <= status_code < 300:
            message = extract_error_message(payload) or response.text[:MAX_BODY_EXCERPT] or None
            hint = WRITE_SCOPE_HINT if status_code == 403 else None
            logger.error(f"Snapshot for server {server.resource_id} failed ({status_code}): {message}")
            return SnapshotOutcome(
                server=server,
                status=OutcomeStatus.FAILED,
                description=description,
                timestamp=start_time,
                http_status=status_code,
                error_message=message,
                hint=hint,
            )

        if not isinstance(payload, dict):
            logger.error(f"Unexpected response for server {server.resource_id}: {response.text[:MAX_BODY_EXCERPT]}")
            return SnapshotOutcome(
                server=server,
                status=OutcomeStatus.UNKNOWN_FAILURE,
                description=description,
                timestamp=start_time,
                http_status=status_code,
                error_message="Unexpected response",
            )

        action_data = _mapping(payload.get('action'))
        action_id = _optional_int(action_data.get('id'))
        image_id = _optional_int(_mapping(payload.get('image')).get('id'))

        action = None
        if action_id is not None:
            status = ActionStatus.parse(action_data.get('status'))
            if status is ActionStatus.UNKNOWN:
                status = ActionStatus.ACCEPTED
            action = Action(action_id=action_id, resource_id=server.resource_id, status=status)

        logger.info(f"Snapshot submitted for server {server.resource_id} (action {action_id}, image {image_id})")
        return SnapshotOutcome(
            server=server,
            status=OutcomeStatus.SUBMITTED,
            description=description,
            timestamp=start_time,
            action=action,
            image_id=image_id,
            http_status=status_code,
        )

    def wait_for_action(self, action: Action) -> Action:
        """Poll an action until it is terminal, unrecognized, or the wait budget runs out.

        Args:
            action: Action as returned by the submission

        Returns:
            The action with its last observed status
        """
        deadline = None
        if self.options.max_wait is not None:
            deadline = self._clock() + self.options.max_wait

        while not action.status.is_terminal:
            if self.cancelled:
                return action
            if self.options.max_polls is not None and action.polls >= self.options.max_polls:
                return replace(action, timed_out=True)
            if deadline is not None and self._clock() >= deadline:
                return replace(action, timed_out=True)

            self._sleep(self.options.poll_interval)

            try:
                payload = self.client.get_action(action.action_id)
            except FetchError as e:
                logger.warning(f"Polling action {action.action_id} failed: {e}")
                return replace(action, status=ActionStatus.UNKNOWN, polls=action.polls + 1, error_message=str(e))

            action_data = payload.get('action')
            if not isinstance(action_data, dict):
                logger.warning(f"Polling action {action.action_id} returned a malformed payload")
                return replace(
                    action,
                    status=ActionStatus.UNKNOWN,
                    polls=action.polls + 1,
                    error_message="Malformed action payload",
                )

            status = ActionStatus.parse(action_data.get('status'))
            error_message = extract_error_message(action_data)
            logger.debug(f"Action {action.action_id}: {status.value}")

            action = replace(
                action,
                status=status,
                polls=action.polls + 1,
                error_message=error_message or action.error_message,
            )

            if status is ActionStatus.UNKNOWN:
                logger.warning(f"Action {action.action_id} reported unrecognized status {action_data.get('status')!r}")
                break

        return action

    @staticmethod
    def get_operation_summary(outcomes: List[SnapshotOutcome]) -> Dict[str, Any]:
        """Generate a summary of snapshot outcomes.

        Args:
            outcomes: Outcomes to summarize

        Returns:
            Dictionary of counts and failed resources
        """
        by_final_status: Dict[str, int] = {}
        for outcome in outcomes:
            if outcome.final_status is not None:
                key = outcome.final_status.value
                by_final_status[key] = by_final_status.get(key, 0) + 1

        failed = [o for o in outcomes if o.submission_failed]

        return {
            'total': len(outcomes),
            'submitted': sum(1 for o in outcomes if o.status is OutcomeStatus.SUBMITTED),
            'dry_run': sum(1 for o in outcomes if o.status is OutcomeStatus.DRY_RUN),
            'failed': len(failed),
            'timed_out': sum(1 for o in outcomes if o.action is not None and o.action.timed_out),
            'by_final_status': by_final_status,
            'failed_resources': [
                {
                    'resource_id': o.server.resource_id,
                    'name': o.server.display_name,
                    'http_status': o.http_status,
                    'error_message': o.error_message,
                }
                for o in failed
            ],
        }
