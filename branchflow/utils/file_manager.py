"""Output file layout."""

import os

class FileManager:
    """Manage run output files and the repository lock path."""

    def __init__(self, config, debug=False):
        """Initialize the file manager.

        Args:
            config (Config): Configuration instance
            debug (bool): Enable debug output
        """
        self.config = config
        self.debug = debug

    def setup_directories(self):
        """Create the output directory."""
        os.makedirs(self.config.output_directory, exist_ok=True)

        if self.debug:
            print(f"Output directory: {self.config.output_directory}")

    def _output_path(self, template):
        filename = template.format(run_id=self.config.ensure_run_id())
        return os.path.join(self.config.output_directory, filename)

    def get_debug_log_path(self):
        return self._output_path(self.config.log_filename_template)

    def get_report_path(self):
        return self._output_path(self.config.report_filename_template)

    def get_lock_path(self):
        """Lock file scoped to the whole working clone.

        Kept inside .git when present so it never shows up as a working tree change.
        """
        git_dir = os.path.join(self.config.repo_dir, '.git')
        base = git_dir if os.path.isdir(git_dir) else self.config.repo_dir
        return os.path.join(base, self.config.lock_filename)
