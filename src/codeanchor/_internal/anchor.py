"""Anchor pipeline: submit one verification report to the ledger.

Steps run in a fixed order and each must confirm before the next starts:
codebase digests, security report, deployment (optional), status read-back.
A failing step stops the pipeline; steps already confirmed stay on chain.
"""

import logging
import os
from pathlib import Path
from typing import Dict, Mapping, Optional, Union

from codeanchor._internal.json_io import write_json_document
from codeanchor._internal.ledger import VerificationLedger
from codeanchor.contracts import AnchorResult, DeploymentInfo, VerificationRecord
from codeanchor.kernel.report import utc_timestamp
from codeanchor.kernel.security import build_security_report

LOGGER = logging.getLogger(__name__)

BLOCKCHAIN_REPORT_FILENAME = "blockchain-verification-report.json"
DEFAULT_ENVIRONMENT = "production"

NETWORK_NAMES: Dict[int, str] = {
    1: "mainnet",
    137: "polygon",
    80002: "amoy",
    31337: "hardhat",
}


def network_name(chain_id: int) -> str:
    return NETWORK_NAMES.get(chain_id, f"chain-{chain_id}")


def plan_deployment(
    record: VerificationRecord,
    portfolio_address: Optional[str],
    environment: str = DEFAULT_ENVIRONMENT,
    force: bool = False,
    environ: Optional[Mapping[str, str]] = None,
) -> Optional[DeploymentInfo]:
    """Deployment to record alongside a report, if any.

    A deployment is recorded when running under GitHub Actions (or when
    forced) and a portfolio contract address is known. Its transaction hash
    and gas are not known at this point and are recorded as empty and zero.
    """
    env = os.environ if environ is None else environ
    if not (force or env.get("GITHUB_ACTIONS")):
        return None
    if not portfolio_address:
        LOGGER.info("No portfolio contract address; deployment not recorded")
        return None
    return DeploymentInfo(
        project_name=record.project_name,
        version=record.version,
        environment=environment,
        contract_address=portfolio_address,
    )


def anchor_report(
    record: VerificationRecord,
    ledger: VerificationLedger,
    deployment: Optional[DeploymentInfo] = None,
) -> AnchorResult:
    """Store a report on the ledger and read back its verification status.

    Raises:
        AnchorConfigError: If the ledger has no signer or is on the wrong chain
        TransactionRejectedError: If any transaction is refused or reverts
        ConfirmationUnknownError: If a transaction was sent but its receipt
            did not arrive in time or could not be read
        LedgerReadError: If the status read-back fails
    """
    security_report = build_security_report(record.security_checks, record.is_git_clean)

    LOGGER.info("Storing codebase hash for %s %s", record.project_name, record.version)
    codebase_receipt = ledger.store_codebase_hash(record)

    LOGGER.info(
        "Storing security report (%d failing tools)", security_report.vulnerabilities_found
    )
    security_receipt = ledger.store_security_report(
        record.project_name, record.version, security_report
    )

    deployment_receipt = None
    if deployment is not None:
        LOGGER.info("Recording %s deployment of %s", deployment.environment, deployment.contract_address)
        deployment_receipt = ledger.record_deployment(deployment)

    status = ledger.get_verification_status(record.project_name, record.version)
    return AnchorResult(
        codebase_hash=codebase_receipt,
        security_report=security_receipt,
        deployment=deployment_receipt,
        status=status,
    )


def write_blockchain_report(
    record: VerificationRecord,
    result: AnchorResult,
    chain_id: int,
    verification_contract: str,
    path: Union[str, Path],
) -> Path:
    """Write the report extended with a ``blockchain`` block describing the anchoring."""
    document = record.to_wire()
    document["blockchain"] = {
        "network": network_name(chain_id),
        "chainId": chain_id,
        "verificationContract": verification_contract,
        "transactions": {
            "codebaseHash": result.codebase_hash.transaction_hash,
            "securityReport": result.security_report.transaction_hash,
            "deployment": result.deployment.transaction_hash if result.deployment else None,
        },
        "verificationStatus": result.status.to_wire(),
        "timestamp": utc_timestamp(),
    }
    return write_json_document(path, document)
