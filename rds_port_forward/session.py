import json
import logging
import signal
import subprocess

from .exceptions import SessionError

DOCUMENT_NAME = "AWS-StartPortForwardingSessionToRemoteHost"
FORWARDED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class SSMSession:
    """SSM Session Manager context manager class."""

    def __init__(
        self,
        ssm_client,
        target: str,
        parameters: dict,
        logger=None,
        profile_name: str = None,
        document_name: str = DOCUMENT_NAME,
    ):
        self.ssm = ssm_client
        self.logger = logger or logging.getLogger(__name__)
        self.profile_name = profile_name
        self.request = {
            "Target": target,
            "DocumentName": document_name,
            "Parameters": parameters,
        }
        self.session = None
        self.proc = None

    def __enter__(self):
        self.logger.info(f"Starting SSM session for target: {self.request['Target']}")
        self.session = self.ssm.start_session(**self.request)
        try:
            self.logger.debug("Launching session-manager-plugin...")
            self.proc = subprocess.Popen(
                (
                    "session-manager-plugin",
                    json.dumps(self.session),
                    self.ssm.meta.region_name,
                    "StartSession",
                    self.profile_name or "",
                    json.dumps(self.request),
                    self.ssm.meta.endpoint_url,
                )
            )
        except FileNotFoundError:
            self.__exit__(None, None, None)
            raise SessionError("The AWS session-manager-plugin is required.")
        return self

    def wait(self):
        """Block until the plugin exits, forwarding SIGINT and SIGTERM to it.

        Returns the exit code, or None when the plugin was killed by a signal.
        """

        def forward(signum, frame):
            self.logger.debug(f"Handling {signal.Signals(signum).name}")
            self.proc.send_signal(signum)

        previous = {sig: signal.signal(sig, forward) for sig in FORWARDED_SIGNALS}
        try:
            code = self.proc.wait()
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler)

        if code < 0:
            self.logger.info(
                f"Child process terminated due to signal ({signal.Signals(-code).name})"
            )
            return None
        self.logger.info(f"Child process exited (code {code})")
        return code

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.proc is not None and self.proc.poll() is None:
            self.logger.debug("Terminating session-manager-plugin...")
            self.proc.terminate()
            try:
                self.proc.wait(timeout=5)
            except subprocess.TimeoutExpired:
                self.logger.debug("Force killing session-manager-plugin...")
                self.proc.kill()

        if self.session:
            self.ssm.terminate_session(SessionId=self.session["SessionId"])
            self.session = None


def run_session(ssm_client, target, forwarding_params, logger=None, profile_name=None):
    """Start a port forwarding session and wait for it to end."""
    with SSMSession(
        ssm_client,
        target=target,
        parameters=json.loads(forwarding_params),
        logger=logger,
        profile_name=profile_name,
    ) as session:
        return session.wait()
