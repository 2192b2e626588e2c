import logging

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .exceptions import SessionError


class AWSSessions:
    def __init__(self):
        # This is put here due to https://github.com/boto/botocore/issues/1841
        boto3.set_stream_logger(name="botocore.credentials", level=logging.ERROR)

        self.sessions = {}

    def get_session(self, profile_name=None, region_name=None):
        key = (profile_name, region_name)
        if key not in self.sessions:
            self.sessions[key] = self.create_session(
                profile_name=profile_name, region_name=region_name
            )
        return self.sessions[key]

    def create_session(self, profile_name=None, region_name=None):
        kwargs = {}
        if profile_name is not None:
            kwargs["profile_name"] = profile_name
        if region_name is not None:
            kwargs["region_name"] = region_name
        try:
            session = boto3.Session(**kwargs)
            session.client("sts").get_caller_identity()
            return session
        except (BotoCoreError, ClientError) as e:
            profile = profile_name or "default"
            raise SessionError(
                f"Failed to create AWS session with profile '{profile}': {e}"
            ) from e
