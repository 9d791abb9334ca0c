"""Event notifier and webhook delivery."""

import time
import requests
from branchflow.models.event import Event

class WebhookSink:
    """POST events as JSON to a chat/email bridge webhook."""

    def __init__(self, url, config, token=None, debug_logger=None):
        """Initialize the webhook sink.

        Args:
            url (str): Webhook endpoint
            config (Config): Configuration instance
            token (str, optional): Bearer token for the endpoint
            debug_logger (DebugLogger, optional): Debug logger instance
        """
        self.url = url
        self.config = config
        self.token = token
        self.logger = debug_logger

    def get_headers(self):
        headers = {'Content-Type': 'application/json'}
        if self.token:
            headers['Authorization'] = f'Bearer {self.token}'
        return headers

    def deliver(self, event):
        """Deliver one event with retry on timeouts and rate limits.

        Args:
            event (Event): Event to deliver

        Returns:
            str: None on success, otherwise the last delivery error
        """
        last_error = None

        for attempt in range(self.config.webhook_max_retries):
            try:
                response = requests.post(
                    self.url,
                    headers=self.get_headers(),
                    json=event.to_dict(),
                    timeout=self.config.webhook_timeout
                )

                if response.status_code == 429:
                    last_error = "rate limited (HTTP 429)"
                    if self.logger:
                        self.logger.log(f"    Webhook rate limited on {event.kind.value}")
                    if attempt < self.config.webhook_max_retries - 1:
                        time.sleep(self.config.webhook_retry_delay * (2 ** attempt))
                    continue

                response.raise_for_status()
                return None

            except requests.exceptions.RequestException as e:
                last_error = str(e)
                if attempt < self.config.webhook_max_retries - 1:
                    wait_time = self.config.webhook_retry_delay * (2 ** attempt)
                    if self.logger:
                        self.logger.log(f"    Webhook error: {e}. Retrying in {wait_time}s...")
                    time.sleep(wait_time)

        return last_error


class EventNotifier:
    """Emit events in order to the messaging collaborator.

    Every event is kept in self.events and forwarded to each sink as it is
    emitted. Events are never batched or deduplicated. A sink that fails to
    deliver is reported, but never changes the promotion outcome.
    """

    def __init__(self, run_id=None, sinks=None, debug_logger=None, reporter=None, clock=None):
        """Initialize the notifier.

        Args:
            run_id (str, optional): Pipeline run id stamped on every event
            sinks (list, optional): Objects with a deliver(event) method
            debug_logger (DebugLogger, optional): Debug logger instance
            reporter (RunReporter, optional): Run reporter instance
            clock (callable, optional): Returns the emission time
        """
        self.run_id = run_id
        self.sinks = list(sinks or [])
        self.logger = debug_logger
        self.reporter = reporter
        self.clock = clock
        self.events = []

    def emit(self, kind, **payload):
        """Emit one event.

        Args:
            kind (EventKind): The event kind
            **payload: Kind-specific fields

        Returns:
            Event: The emitted event
        """
        event = Event(
            kind,
            payload,
            run_id=self.run_id,
            sequence=len(self.events) + 1,
            emitted_at=self.clock() if self.clock else None
        )
        self.events.append(event)

        if self.logger:
            self.logger.log(f"  EVENT {event.kind.value}: {event.to_dict()['payload']}")
        if self.reporter:
            self.reporter.add_event(event)

        for sink in self.sinks:
            error = sink.deliver(event)
            if error:
                if self.logger:
                    self.logger.log(f"WARNING: Failed to deliver {event.kind.value} via {type(sink).__name__}: {error}")
                if self.reporter:
                    self.reporter.add_delivery_warning(event.kind.value, error)

        return event
