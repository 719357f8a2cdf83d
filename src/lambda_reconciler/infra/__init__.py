"""AWS-facing building blocks for lambda-reconciler."""

from .function_manager import FunctionDeployer, FunctionRemover, FunctionUpdater
from .package_builder import PackageBuilder
from .role_provisioner import RoleProvisioner

__all__ = [
    "FunctionDeployer",
    "FunctionRemover",
    "FunctionUpdater",
    "PackageBuilder",
    "RoleProvisioner",
]
