"""SPYT: a small ordered pipeline of idempotent setup steps.

1. wait for the cluster to be Running
2. create a secret holding a random token
3. run a job creating a privileged user owning that token
4. run a job publishing the SPYT environment with that token
"""

from typing import Any

from yt_operator.components.base import ComponentBase
from yt_operator.components.init_job import InitJob
from yt_operator.labeller import Labeller
from yt_operator.logging_config import get_logger
from yt_operator.models.cluster import ClusterState, Spyt as SpytResource, Ytsaurus
from yt_operator.resources import StringSecret, fetch_all
from yt_operator.scripts import create_user_commands, init_job_prologue
from yt_operator.status import ComponentStatus, SyncStatus, waiting_status
from yt_operator.ytconfig import CLIENT_CONFIG_FILE_NAME, Generator, rand_string

logger = get_logger(__name__)

TOKEN_SECRET_KEY = "YT_TOKEN"
TOKEN_LENGTH = 30
SPYT_USER = "spyt_releaser"


class Spyt(ComponentBase):
    def __init__(self, cfgen: Generator, spyt: SpytResource, cluster: Ytsaurus, api):
        labeller = Labeller(cluster.name, spyt.namespace, "spyt", spyt.spec.name)
        super().__init__(labeller, cluster)
        self.cfgen = cfgen
        self.secret = StringSecret(labeller.secret_name(), labeller, api)
        self.init_user = InitJob(
            labeller,
            api,
            "user",
            CLIENT_CONFIG_FILE_NAME,
            cluster.spec.core_image,
            cfgen.get_native_client_config,
            image_pull_secrets=cluster.spec.image_pull_secrets,
        )
        self.init_environment = InitJob(
            labeller,
            api,
            "spyt-environment",
            CLIENT_CONFIG_FILE_NAME,
            spyt.spec.image,
            cfgen.get_native_client_config,
            image_pull_secrets=cluster.spec.image_pull_secrets,
        )

    def fetch(self) -> None:
        fetch_all([self.init_user, self.init_environment, self.secret])

    def create_init_user_script(self) -> str:
        token, _ = self.secret.get_value(TOKEN_SECRET_KEY)
        script = [init_job_prologue()]
        script.extend(create_user_commands(SPYT_USER, "", token, True))
        return "\n".join(script)

    def create_init_script(self) -> str:
        return "\n".join(["/entrypoint.sh"])

    def _environment(self) -> list[dict[str, Any]]:
        token, _ = self.secret.get_value(TOKEN_SECRET_KEY)
        return [
            {"name": "YT_PROXY", "value": self.cfgen.get_http_proxies_address()},
            {"name": "YT_TOKEN", "value": token},
            {"name": "EXTRA_PUBLISH_CLUSTER_OPTIONS", "value": "--ignore-existing"},
        ]

    def _do_sync(self, dry: bool) -> ComponentStatus:
        if self.cluster.status.state != ClusterState.RUNNING:
            return waiting_status(SyncStatus.BLOCKED, "cluster is not running")

        if self.secret.need_sync(TOKEN_SECRET_KEY, ""):
            if not dry:
                logger.info(f"Generating token for {self.get_name()}")
                secret = self.secret.build()
                secret["stringData"] = {TOKEN_SECRET_KEY: rand_string(TOKEN_LENGTH)}
                self.secret.sync()
            return waiting_status(SyncStatus.PENDING, "token secret")

        if not dry:
            self.init_user.set_init_script(self.create_init_user_script())
        status = self.init_user.sync(dry)
        if not status.is_ready():
            return status

        if not dry:
            self.init_environment.set_init_script(self.create_init_script())
            job = self.init_environment.build()
            job["spec"]["template"]["spec"]["containers"][0]["env"] = self._environment()

        return self.init_environment.sync(dry)
