"""IAM execution role provisioning for new Lambda functions."""

import logging
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from ..exceptions import PolicyAttachError, RoleCreationError
from ..models import ExecutionIdentity
from ..naming import ROLE_SUFFIX, role_name_for

logger = logging.getLogger(__name__)


class RoleProvisioner:
    """
    Creates a dedicated execution role per function.

    Each function gets its own role ``<function><suffix>``, trusted by the
    configured trust policy, with one baseline policy attached.

    Provisioning is create-only: there is no existence check, so provisioning
    a function whose role already exists fails with ``RoleCreationError``
    (``EntityAlreadyExists``). Callers must only provision functions that
    are new to the account.

    Args:
        iam_client: aioboto3 IAM client
        trust_policy: Assume-role policy document (JSON text)
        policy_arn: Policy attached to every role
        role_suffix: Appended to the function name to name the role
    """

    def __init__(
        self,
        iam_client: Any,
        trust_policy: str,
        policy_arn: str,
        role_suffix: str = ROLE_SUFFIX,
    ) -> None:
        self._iam = iam_client
        self.trust_policy = trust_policy
        self.policy_arn = policy_arn
        self.role_suffix = role_suffix

    async def provision(self, function_name: str) -> ExecutionIdentity:
        """
        Create the execution role for a function and attach the baseline policy.

        Returns:
            The provisioned identity, once both steps succeeded

        Raises:
            RoleCreationError: If the role cannot be created
            PolicyAttachError: If the role was created but the policy could
                not be attached. The role is left in place.
        """
        role_name = role_name_for(function_name, self.role_suffix)
        role_arn = await self._create_role(function_name, role_name)
        await self._attach_policy(function_name, role_name)
        return ExecutionIdentity(
            function_name=function_name,
            role_name=role_name,
            role_arn=role_arn,
        )

    async def _create_role(self, function_name: str, role_name: str) -> str:
        logger.debug("CreateRole %s with trust policy %s", role_name, self.trust_policy)
        try:
            response = await self._iam.create_role(
                RoleName=role_name,
                AssumeRolePolicyDocument=self.trust_policy,
            )
        except (ClientError, BotoCoreError) as e:
            raise RoleCreationError(function_name, role_name, cause=e) from e

        role_arn: str = response["Role"]["Arn"]
        logger.info("Created role %s (%s)", role_name, role_arn)
        return role_arn

    async def _attach_policy(self, function_name: str, role_name: str) -> None:
        try:
            await self._iam.attach_role_policy(RoleName=role_name, PolicyArn=self.policy_arn)
        except (ClientError, BotoCoreError) as e:
            logger.warning(
                "Role %s was created but %s could not be attached; role left without policy",
                role_name,
                self.policy_arn,
            )
            raise PolicyAttachError(function_name, role_name, cause=e) from e

        logger.info("Attached %s to %s", self.policy_arn, role_name)
