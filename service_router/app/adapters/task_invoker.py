"""
ECS task invoker for the edge router.
"""

from typing import Any, Dict, Optional

import aiobotocore.session
from botocore.exceptions import BotoCoreError, ClientError

from shared.errors import HandlerInternalError, UpstreamUnavailable
from shared.logging import get_logger

from ..domain.models import ExecutionScope, TaskRunResult


class TaskInvoker:
    """Launches one-shot task runs against an ECS cluster.

    Every launch runs under an explicit ``ExecutionScope``. The scope's role
    is assumed through STS, narrowed by its policy ARNs, and the launch uses
    the resulting temporary credentials; the rest of the router never holds
    them. A scope without a role is refused rather than falling back to the
    process credentials.
    """

    def __init__(
        self,
        cluster: str,
        task_definition: str,
        region: str,
        launch_type: str = "EC2",
        session: Optional[aiobotocore.session.AioSession] = None,
    ):
        self.cluster = cluster
        self.task_definition = task_definition
        self.region = region
        self.launch_type = launch_type
        self._session = session or aiobotocore.session.get_session()
        self.logger = get_logger("router.task_invoker")

    async def _scope_credentials(self, scope: ExecutionScope) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "RoleArn": scope.role_arn,
            "RoleSessionName": f"edge-router-{scope.name}",
        }
        if scope.policy_arns:
            params["PolicyArns"] = [{"arn": arn} for arn in scope.policy_arns]

        async with self._session.create_client("sts", region_name=self.region) as sts:
            response = await sts.assume_role(**params)
        credentials = response["Credentials"]
        return {
            "aws_access_key_id": credentials["AccessKeyId"],
            "aws_secret_access_key": credentials["SecretAccessKey"],
            "aws_session_token": credentials["SessionToken"],
        }

    async def run(self, scope: ExecutionScope) -> TaskRunResult:
        """Launch one task and return its identifiers.

        Returns as soon as ECS accepts or rejects the launch; the task's
        progress is not followed.
        """
        self.logger.info(
            "Launching task",
            cluster=self.cluster,
            task_definition=self.task_definition,
            scope=scope.name,
        )
        if not scope.role_arn:
            raise HandlerInternalError(
                "Execution scope has no role to assume",
                details={"scope": scope.name},
            )

        try:
            credentials = await self._scope_credentials(scope)
            async with self._session.create_client("ecs", region_name=self.region, **credentials) as ecs:
                response = await ecs.run_task(
                    cluster=self.cluster,
                    taskDefinition=self.task_definition,
                    launchType=self.launch_type,
                    count=1,
                )
        except (ClientError, BotoCoreError) as exc:
            self.logger.error("Task launch failed", cluster=self.cluster, error=str(exc))
            raise UpstreamUnavailable(
                service="task_pool",
                message=str(exc),
                details={"cluster": self.cluster, "task_definition": self.task_definition},
            ) from exc

        failures = response.get("failures") or []
        if failures:
            self.logger.error("Task launch rejected", cluster=self.cluster, failures=failures)
            raise UpstreamUnavailable(
                service="task_pool",
                message="Task launch rejected",
                details={"cluster": self.cluster, "failures": failures},
            )

        task_ids = tuple(task["taskArn"] for task in response.get("tasks") or [])
        if not task_ids:
            raise UpstreamUnavailable(
                service="task_pool",
                message="No tasks launched",
                details={"cluster": self.cluster},
            )

        self.logger.info("Task launched", cluster=self.cluster, task_ids=list(task_ids))
        return TaskRunResult(task_ids=task_ids)
