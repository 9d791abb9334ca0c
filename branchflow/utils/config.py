import os
from datetime import datetime
from dotenv import load_dotenv

class Config:
    def __init__(self):
        """Initialize configuration with default values."""
        # Repository
        self.repo_dir = "."
        self.remote = "origin"

        # Git
        self.git_timeout = None  # Seconds; None waits indefinitely
        self.author_name = None
        self.author_email = None

        # General
        self.debug = False
        self.run_id = None

        # Notifications
        self.webhook_url = None
        self.webhook_token = None
        self.webhook_timeout = 30
        self.webhook_max_retries = 3
        self.webhook_retry_delay = 2.0

        # File paths
        self.output_directory = "./output"
        self.lock_filename = ".branchflow.lock"

        # Output settings
        self.log_filename_template = "branchflow_{run_id}_debug.txt"
        self.report_filename_template = "branchflow_{run_id}_report.txt"

    @classmethod
    def from_env(cls, env_file='.env'):
        """Create configuration from environment variables.

        Args:
            env_file (str): Path to environment file (default: '.env')
        """
        load_dotenv(env_file)

        config = cls()
        config.repo_dir = os.getenv('BRANCHFLOW_REPO_DIR', config.repo_dir)
        config.remote = os.getenv('BRANCHFLOW_REMOTE', config.remote)
        config.webhook_url = os.getenv('BRANCHFLOW_WEBHOOK_URL')
        config.webhook_token = os.getenv('BRANCHFLOW_WEBHOOK_TOKEN')
        config.author_name = os.getenv('BRANCHFLOW_AUTHOR_NAME')
        config.author_email = os.getenv('BRANCHFLOW_AUTHOR_EMAIL')
        config.run_id = os.getenv('BRANCHFLOW_RUN_ID') or os.getenv('BUILD_NUMBER')
        config.debug = os.getenv('BRANCHFLOW_DEBUG', '').lower() == 'true'

        if os.getenv('BRANCHFLOW_GIT_TIMEOUT'):
            config.git_timeout = float(os.getenv('BRANCHFLOW_GIT_TIMEOUT'))
        if os.getenv('BRANCHFLOW_OUTPUT_DIR'):
            config.output_directory = os.getenv('BRANCHFLOW_OUTPUT_DIR')

        return config

    def ensure_run_id(self):
        """Fill in a run id from the clock when none was supplied.

        Returns:
            str: The run id
        """
        if not self.run_id:
            self.run_id = datetime.now().strftime('%Y%m%d%H%M%S%f')
        return self.run_id

    def validate(self):
        """Validate the configuration.

        Returns:
            tuple: (bool, str) - (is_valid, error_message)
        """
        if not self.repo_dir or not os.path.isdir(self.repo_dir):
            return False, f"Repository directory not found: {self.repo_dir}"
        if not self.remote:
            return False, "Remote name is required"
        if self.webhook_url and not self.webhook_url.startswith(('http://', 'https://')):
            return False, f"Webhook URL must be http(s): {self.webhook_url}"
        if self.git_timeout is not None and self.git_timeout <= 0:
            return False, "Git timeout must be positive"
        if self.run_id and '/' in str(self.run_id):
            return False, "Run id cannot contain '/'"
        return True, None
