"""web3 clients for the ProjectVerification and Portfolio contracts.

Writes build, sign and send exactly one transaction, then block until the
receipt arrives or the confirmation timeout expires. Writes are never
retried. Reads go through a retry policy for transient transport failures.
"""

import logging
from typing import Any, Callable, Optional, Sequence, Type

from eth_account import Account
from pydantic import BaseModel
from web3 import LegacyWebSocketProvider, Web3
from web3.exceptions import TimeExhausted, Web3Exception
from web3.middleware import ExtraDataToPOAMiddleware

from codeanchor._internal.ledger.abi import PORTFOLIO_ABI, VERIFICATION_ABI
from codeanchor._internal.retry import call_with_retry, create_retry_policy
from codeanchor._internal.settings import AnchorSettings, SettingsError
from codeanchor.contracts import (
    AnchorReceipt,
    CodebaseHashEntry,
    DeploymentInfo,
    DeploymentRecord,
    SecurityReport,
    SecurityReportEntry,
    VerificationRecord,
    VerificationStatus,
)
from codeanchor.kernel.hash_utils import normalize_hex_digest
from codeanchor.kernel.portfolio import (
    ACHIEVEMENT_LAYOUT,
    CERTIFICATION_LAYOUT,
    CONTACT_FIELDS,
    EDUCATION_LAYOUT,
    EXPERIENCE_LAYOUT,
    FOCUS_AREA_LAYOUT,
    PROJECT_LAYOUT,
    RESEARCH_LAYOUT,
    Contact,
    PortfolioData,
    SkillCategory,
    StructLayout,
)

LOGGER = logging.getLogger(__name__)


class AnchorError(Exception):
    """Base class for ledger failures.

    ``transaction_hash`` is set once a transaction has been broadcast.
    """
    retryable = False

    def __init__(self, message: str, transaction_hash: Optional[str] = None):
        super().__init__(message)
        self.transaction_hash = transaction_hash


class AnchorConfigError(AnchorError):
    """Missing contract address or signer, or the node is on the wrong chain."""
    pass


class TransactionRejectedError(AnchorError):
    """The node refused the transaction, or it reverted."""
    pass


class ConfirmationUnknownError(AnchorError):
    """The transaction was sent but its receipt could not be obtained.

    It may still be mined. Check ``transaction_hash`` on an explorer before
    submitting again.
    """
    retryable = True

    def __init__(self, message: str, transaction_hash: str):
        super().__init__(message, transaction_hash)


class ConfirmationTimeoutError(ConfirmationUnknownError):
    """No receipt arrived within the confirmation timeout."""
    pass


class LedgerReadError(AnchorError):
    """A read call failed after all retry attempts."""
    pass


def connect(rpc_url: str) -> Web3:
    """Open a web3 connection for an http(s) or ws(s) endpoint.

    Polygon blocks carry oversized extraData, so the POA middleware is
    always installed.
    """
    if rpc_url.startswith(("ws://", "wss://")):
        provider = LegacyWebSocketProvider(rpc_url)
    else:
        provider = Web3.HTTPProvider(rpc_url)
    w3 = Web3(provider)
    w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
    return w3


def _hex_if_bytes(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, (list, tuple)):
        return [_hex_if_bytes(v) for v in value]
    return value


def _from_struct(model: Type[BaseModel], values: Sequence[Any]) -> Any:
    """Build a read model from a struct tuple whose order matches the model's fields."""
    fields = list(model.model_fields)
    if len(values) != len(fields):
        raise LedgerReadError(
            f"{model.__name__} expects {len(fields)} values, got {len(values)}"
        )
    return model(**{name: _hex_if_bytes(v) for name, v in zip(fields, values)})


class _ContractClient:
    def __init__(self, w3: Web3, address: str, abi: list, read_policy: Optional[Callable] = None):
        self.w3 = w3
        self.address = Web3.to_checksum_address(address)
        self.contract = w3.eth.contract(address=self.address, abi=abi)
        self.read_policy = read_policy if read_policy is not None else create_retry_policy()

    def _call(self, name: str, *args: Any) -> Any:
        fn = getattr(self.contract.functions, name)(*args)
        try:
            return call_with_retry(fn.call, self.read_policy)
        except (Web3Exception, ValueError, OSError) as e:
            raise LedgerReadError(f"{name} failed: {e}") from e

    def get_chain_id(self) -> int:
        """Chain id reported by the RPC node, read under the retry policy."""
        try:
            return int(call_with_retry(lambda: self.w3.eth.chain_id, self.read_policy))
        except (Web3Exception, ValueError, OSError) as e:
            raise LedgerReadError(f"eth_chainId failed: {e}") from e


class VerificationLedger(_ContractClient):
    """Client of the ProjectVerification contract."""

    def __init__(
        self,
        w3: Web3,
        address: str,
        account: Optional[Any] = None,
        confirmation_timeout: float = 120.0,
        chain_id: Optional[int] = None,
        read_policy: Optional[Callable] = None,
    ):
        super().__init__(w3, address, VERIFICATION_ABI, read_policy)
        self.account = account
        self.confirmation_timeout = confirmation_timeout
        self.chain_id = chain_id
        self._chain_checked = False

    @classmethod
    def from_settings(cls, settings: AnchorSettings, require_signer: bool = True) -> "VerificationLedger":
        """Connect using environment settings.

        Raises:
            AnchorConfigError: If the contract address (or, for writers, the
                signer key) is not configured
        """
        try:
            address = settings.require_verification_address()
            key = settings.require_private_key() if require_signer else None
        except SettingsError as e:
            raise AnchorConfigError(str(e)) from e
        account = Account.from_key(key) if key is not None else None
        return cls(
            connect(settings.rpc_url),
            address,
            account=account,
            confirmation_timeout=settings.confirmation_timeout,
            chain_id=settings.chain_id,
        )

    def _ensure_chain(self) -> None:
        if self.chain_id is None or self._chain_checked:
            return
        actual = self.get_chain_id()
        if actual != self.chain_id:
            raise AnchorConfigError(
                f"RPC node is on chain {actual}, expected chain {self.chain_id}"
            )
        self._chain_checked = True

    def _transact(self, name: str, *args: Any) -> AnchorReceipt:
        if self.account is None:
            raise AnchorConfigError(f"{name} needs a signer key")
        self._ensure_chain()

        sender = self.account.address
        try:
            tx = getattr(self.contract.functions, name)(*args).build_transaction({
                "from": sender,
                "nonce": self.w3.eth.get_transaction_count(sender, "pending"),
            })
            signed = self.account.sign_transaction(tx)
            tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
        except (Web3Exception, ValueError, OSError) as e:
            raise TransactionRejectedError(f"{name} rejected: {e}") from e

        tx_hex = Web3.to_hex(tx_hash)
        LOGGER.info("%s submitted in %s, waiting for confirmation", name, tx_hex)
        try:
            receipt = self.w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self.confirmation_timeout
            )
        except TimeExhausted as e:
            raise ConfirmationTimeoutError(
                f"{name} not confirmed within {self.confirmation_timeout}s (transaction {tx_hex})",
                tx_hex,
            ) from e
        except (Web3Exception, ValueError, OSError) as e:
            raise ConfirmationUnknownError(
                f"{name} sent in transaction {tx_hex} but its receipt could not be read: {e}",
                tx_hex,
            ) from e

        if receipt["status"] != 1:
            raise TransactionRejectedError(f"{name} reverted in transaction {tx_hex}", tx_hex)
        LOGGER.info("%s confirmed in block %d", name, receipt["blockNumber"])
        return AnchorReceipt(
            transaction_hash=tx_hex,
            block_number=receipt["blockNumber"],
            gas_used=receipt["gasUsed"],
        )

    # Writes

    def store_codebase_hash(self, record: VerificationRecord) -> AnchorReceipt:
        return self._transact(
            "storeCodebaseHash",
            record.project_name,
            record.version,
            record.git_commit_hash,
            record.source_code_hash,
            record.dependencies_hash,
            record.config_hash,
            record.build_artifacts_hash,
            record.deployment_hash,
        )

    def store_security_report(self, project_name: str, version: str, report: SecurityReport) -> AnchorReceipt:
        return self._transact(
            "storeSecurityReport",
            project_name,
            version,
            report.vulnerabilities_found,
            Web3.to_bytes(hexstr=report.security_scan_hash),
            list(report.security_tools),
            report.is_passing,
        )

    def record_deployment(self, info: DeploymentInfo) -> AnchorReceipt:
        return self._transact(
            "recordDeployment",
            info.project_name,
            info.version,
            info.environment,
            Web3.to_checksum_address(info.contract_address),
            info.transaction_hash,
            info.gas_used,
        )

    # Reads

    def get_verification_status(self, project_name: str, version: str) -> VerificationStatus:
        values = self._call("getVerificationStatus", project_name, version)
        return _from_struct(VerificationStatus, values)

    def get_latest_codebase_hash(self, project_name: str) -> CodebaseHashEntry:
        return _from_struct(CodebaseHashEntry, self._call("getLatestCodebaseHash", project_name))

    def get_latest_security_report(self, project_name: str) -> SecurityReportEntry:
        return _from_struct(SecurityReportEntry, self._call("getLatestSecurityReport", project_name))

    def get_latest_deployment(self, project_name: str) -> DeploymentRecord:
        return _from_struct(DeploymentRecord, self._call("getLatestDeployment", project_name))

    def get_deployment_count(self, project_name: str) -> int:
        return int(self._call("getDeploymentCount", project_name))


class PortfolioLedger(_ContractClient):
    """Read-only client of the Portfolio content contract."""

    def __init__(self, w3: Web3, address: str, read_policy: Optional[Callable] = None):
        super().__init__(w3, address, PORTFOLIO_ABI, read_policy)

    @classmethod
    def from_settings(cls, settings: AnchorSettings) -> "PortfolioLedger":
        try:
            address = settings.require_portfolio_address()
        except SettingsError as e:
            raise AnchorConfigError(str(e)) from e
        return cls(connect(settings.rpc_url), address)

    def _read_structs(self, name: str, layout: StructLayout) -> list:
        return [layout.from_tuple(item) for item in self._call(name)]

    def read_portfolio(self) -> PortfolioData:
        """Read every content section, one call per section."""
        contact = self._call("getContact")
        return PortfolioData(
            name=self._call("name"),
            title=self._call("title"),
            summary=self._call("summary"),
            contact=Contact(**dict(zip(CONTACT_FIELDS, contact))),
            skills={c: list(self._call("getSkills", c.value)) for c in SkillCategory},
            experience=self._read_structs("getExperiences", EXPERIENCE_LAYOUT),
            projects=self._read_structs("getProjects", PROJECT_LAYOUT),
            research=self._read_structs("getResearchPapers", RESEARCH_LAYOUT),
            certifications=self._read_structs("getCertifications", CERTIFICATION_LAYOUT),
            education=self._read_structs("getEducationHistory", EDUCATION_LAYOUT),
            achievements=self._read_structs("getAchievements", ACHIEVEMENT_LAYOUT),
            academic_focus=self._read_structs("getAcademicFocusAreas", FOCUS_AREA_LAYOUT),
        )

    def get_data_hash(self) -> str:
        return normalize_hex_digest(self._call("getDataHash"))
