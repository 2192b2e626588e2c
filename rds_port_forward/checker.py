import subprocess

from .exceptions import SessionError

SSM_PLUGIN_EXECUTABLE = "session-manager-plugin"

INSTALL_DOCS = (
    "https://docs.aws.amazon.com/systems-manager/latest/userguide/"
    "session-manager-working-with-install-plugin.html"
)


class ConfigChecker:
    @staticmethod
    def check_session_manager_plugin():
        """Check if session-manager-plugin is installed and accessible."""
        try:
            subprocess.run(
                [SSM_PLUGIN_EXECUTABLE, "--version"],
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                check=True,
            )
            return True
        except (subprocess.CalledProcessError, FileNotFoundError):
            return False

    def validate_all(self):
        """Raise if anything needed to start a session is missing."""
        if not self.check_session_manager_plugin():
            raise SessionError(
                "Session manager plugin executable was not found. "
                f"Install it first: {INSTALL_DOCS}"
            )
