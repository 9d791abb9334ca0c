"""Run log written to file with live updates."""

from datetime import datetime

class DebugLogger:
    """Logger that writes the run log to a file and optionally the console."""

    def __init__(self, log_file_path=None, console_debug=False):
        """Initialize the debug logger.

        Args:
            log_file_path (str, optional): Path to the log file; None logs to console only
            console_debug (bool): Whether to also print to console
        """
        self.log_file_path = log_file_path
        self.console_debug = console_debug
        self.file_handle = None

        if log_file_path:
            try:
                # Line buffering so a killed run still leaves its log behind
                self.file_handle = open(log_file_path, 'w', encoding='utf-8', buffering=1)
            except OSError as e:
                print(f"Warning: Could not open run log file: {e}")
        self.log(f"Run log started: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")

    def log(self, message):
        """Write a message to the run log.

        Args:
            message (str): Message to log
        """
        timestamp = datetime.now().strftime('%Y-%m-%d %H:%M:%S.%f')[:-3]
        log_line = f"[{timestamp}] {message}"

        if self.file_handle:
            try:
                self.file_handle.write(log_line + '\n')
            except OSError as e:
                print(f"Warning: Failed to write to run log: {e}")

        if self.console_debug:
            print(message)

    def section(self, title):
        """Log a section header."""
        self.log("=" * 80)
        self.log(title)
        self.log("=" * 80)

    def close(self):
        """Close the log file."""
        if self.file_handle:
            self.log(f"Run log ended: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
            self.file_handle.close()
            self.file_handle = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
