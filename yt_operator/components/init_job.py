"""One-shot initialization job with its own readiness gate."""

from typing import Any

from yt_operator.components.config_helper import ConfigHelper
from yt_operator.components.microservice import CONFIG_MOUNT_PATH, CONFIG_VOLUME
from yt_operator.labeller import Labeller
from yt_operator.logging_config import get_logger
from yt_operator.resources import JobResource, fetch_all, sync_all
from yt_operator.status import ComponentStatus, SyncStatus, simple_status, waiting_status
from yt_operator.ytconfig import GeneratorFunc

logger = get_logger(__name__)


class InitJob:
    """Runs a script once, in a job that carries its own client config.

    Statuses, in order of progress:
        Pending("<name> creation"): the job does not exist yet
        Blocked("<name> completion"): the job is running
        Blocked("<name> failed"): the job exhausted its retries
        Ready: the job succeeded
    """

    def __init__(
        self,
        labeller: Labeller,
        api,
        name: str,
        config_file_name: str,
        image: str,
        generator: GeneratorFunc,
        image_pull_secrets: list[str] | None = None,
    ):
        self.labeller = labeller
        self.name = name
        self.image = image
        self.image_pull_secrets = image_pull_secrets or []
        self.job = JobResource(labeller.init_job_name(name), labeller, api)
        self.config_helper = ConfigHelper(
            labeller,
            api,
            f"{labeller.init_job_name(name)}-config",
            config_file_name,
            generator,
        )
        self.script = ""
        self._built_job: dict[str, Any] | None = None

    def set_init_script(self, script: str) -> None:
        self.script = script

    def fetch(self) -> None:
        fetch_all([self.config_helper, self.job])

    def build(self) -> dict[str, Any]:
        if self._built_job is None:
            manifest = self.job.build()
            pod_spec = manifest["spec"]["template"]["spec"]
            pod_spec["containers"] = [
                {
                    "name": "ytsaurus-init",
                    "image": self.image,
                    "command": ["bash", "-c", self.script],
                    "volumeMounts": [{"name": CONFIG_VOLUME, "mountPath": CONFIG_MOUNT_PATH}],
                }
            ]
            pod_spec["volumes"] = [
                {
                    "name": CONFIG_VOLUME,
                    "configMap": {"name": self.config_helper.config_map.name},
                }
            ]
            if self.image_pull_secrets:
                pod_spec["imagePullSecrets"] = [{"name": s} for s in self.image_pull_secrets]
            self._built_job = manifest
        return self._built_job

    def sync(self, dry: bool) -> ComponentStatus:
        if not self.job.exists():
            if not dry:
                logger.info(f"Creating init job {self.job.name}")
                self.config_helper.build()
                self.build()
                sync_all([self.config_helper, self.job])
            return waiting_status(SyncStatus.PENDING, f"{self.name} creation")

        if self.job.failed():
            logger.warning(f"Init job {self.job.name} failed")
            return waiting_status(SyncStatus.BLOCKED, f"{self.name} failed")

        if not self.job.completed():
            logger.debug(f"Waiting for init job {self.job.name} to complete")
            return waiting_status(SyncStatus.BLOCKED, f"{self.name} completion")

        return simple_status(SyncStatus.READY)
