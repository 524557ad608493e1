"""Public data models for codeanchor.

Field names are snake_case in Python and camelCase on the wire (report files
and JSON output), matching the names the contracts and earlier reports use.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DIGEST_PATTERN = r"^[0-9a-f]{64}$"
COMMIT_PATTERN = r"^([0-9a-f]{40}|unknown)$"


class WireModel(BaseModel):
    """Immutable model serialized with camelCase keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class VerificationSummary(WireModel):
    is_valid: bool  # git clean AND every security check passed
    timestamp: str  # ISO 8601


class VerificationRecord(WireModel):
    """One verification run, as written to the report file."""
    project_name: str
    version: str
    git_commit_hash: str = Field(pattern=COMMIT_PATTERN)
    source_code_hash: str = Field(pattern=DIGEST_PATTERN)
    dependencies_hash: str = Field(pattern=DIGEST_PATTERN)
    config_hash: str = Field(pattern=DIGEST_PATTERN)
    build_artifacts_hash: str = Field(pattern=DIGEST_PATTERN)
    deployment_hash: str = Field(pattern=DIGEST_PATTERN)
    timestamp: str  # ISO 8601
    final_verification_hash: str = Field(pattern=DIGEST_PATTERN)
    is_git_clean: bool
    security_checks: Dict[str, bool]  # tool name -> passed, in run order
    verification: VerificationSummary

    def category_digests(self) -> List[str]:
        """Category digests in final-hash order: source, deps, config, build, deployment."""
        return [
            self.source_code_hash,
            self.dependencies_hash,
            self.config_hash,
            self.build_artifacts_hash,
            self.deployment_hash,
        ]


class SecurityReport(WireModel):
    """Summary of the security checks submitted on chain."""
    vulnerabilities_found: int  # number of failing tools
    security_scan_hash: str  # 0x keccak-256 of the compact check map
    security_tools: List[str]
    is_passing: bool  # all tools passed AND git clean


class DeploymentInfo(WireModel):
    """Deployment to record on chain."""
    project_name: str
    version: str
    environment: str = "production"
    contract_address: str
    transaction_hash: str = ""  # may be unknown at recording time
    gas_used: int = 0


class DeploymentRecord(WireModel):
    """A deployment as stored on chain."""
    project_name: str
    version: str
    environment: str
    contract_address: str
    deployer: str
    transaction_hash: str
    gas_used: int
    timestamp: int  # unix seconds


class CodebaseHashEntry(WireModel):
    """Latest codebase digests stored on chain for a project."""
    project_name: str
    version: str
    git_commit_hash: str
    source_code_hash: str
    dependencies_hash: str
    config_hash: str
    build_artifacts_hash: str
    deployment_hash: str
    timestamp: int  # unix seconds
    submitter: str


class SecurityReportEntry(WireModel):
    """Latest security report stored on chain for a project."""
    project_name: str
    version: str
    vulnerabilities_found: int
    security_scan_hash: str
    security_tools: List[str]
    is_passing: bool
    timestamp: int  # unix seconds


class VerificationStatus(WireModel):
    """Verification view computed by the contract on read."""
    has_codebase_hash: bool
    has_security_report: bool
    security_passing: bool
    has_deployment: bool
    is_verified: bool


class AnchorReceipt(WireModel):
    """A confirmed ledger transaction."""
    transaction_hash: str
    block_number: int
    gas_used: int


class AnchorResult(WireModel):
    """Outcome of anchoring one report."""
    codebase_hash: AnchorReceipt
    security_report: AnchorReceipt
    deployment: Optional[AnchorReceipt] = None
    status: VerificationStatus
