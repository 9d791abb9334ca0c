class Operation:
    """Base class for all operations."""

    def __init__(self, config, gateway, notifier=None, debug_logger=None, reporter=None):
        """Initialize the operation.

        Args:
            config (Config): Configuration instance
            gateway (VCSGateway): Version-control gateway instance
            notifier (EventNotifier, optional): Event notifier instance
            debug_logger (DebugLogger, optional): Debug logger instance
            reporter (RunReporter, optional): Run reporter instance
        """
        self.config = config
        self.gateway = gateway
        self.notifier = notifier
        self.logger = debug_logger
        self.reporter = reporter

    def log(self, message):
        if self.logger:
            self.logger.log(message)
        if self.config.debug and not (self.logger and self.logger.console_debug):
            print(message)

    def execute(self, *args, **kwargs):
        """Execute the operation.

        This method should be overridden by specific operations.
        """
        raise NotImplementedError("Operation must implement execute method")
