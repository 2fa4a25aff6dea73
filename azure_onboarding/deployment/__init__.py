"""Template deployment and replication waiting for the onboarding pipelines."""

from .arm_deployer import DeploymentOutputs, deploy_template
from .orchestrator import OnboardingOrchestrator, OnboardingResult
from .replication import PrincipalLookup, ReplicationResult, wait_for_principal_replication

__all__ = [
    "DeploymentOutputs",
    "OnboardingOrchestrator",
    "OnboardingResult",
    "PrincipalLookup",
    "ReplicationResult",
    "deploy_template",
    "wait_for_principal_replication",
]
