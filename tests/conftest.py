"""Pytest configuration for tests.

No sys.path hacks - tests should import from installed codeanchor package.
Ledger tests run against the in-process fakes below; nothing here opens a
network connection.
"""

import os
import pytest
from pathlib import Path

from web3.exceptions import TimeExhausted

from codeanchor._internal.retry import create_retry_policy


def pytest_addoption(parser):
    """Add gated perf test option."""
    parser.addoption(
        "--run-perf",
        action="store_true",
        default=False,
        help="Run performance sentinel benchmarks (gated)."
    )


def pytest_collection_modifyitems(config, items):
    """Skip perf-marked tests unless --run-perf is set."""
    if config.getoption("--run-perf"):
        return
    skip_perf = pytest.mark.skip(reason="perf tests gated; pass --run-perf")
    for item in items:
        if "perf" in item.keywords:
            item.add_marker(skip_perf)


def write_tree(root: Path, files: dict) -> Path:
    """Create files (relative path -> text) under root."""
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


SAMPLE_PROJECT = {
    "package.json": '{"name": "demo-portfolio", "version": "2.3.4"}\n',
    "package-lock.json": '{"lockfileVersion": 3}\n',
    "vite.config.js": "export default {};\n",
    ".gitignore": "node_modules\ndist\n",
    "README.md": "# Demo portfolio\n",
    "src/App.jsx": "export const App = () => null;\n",
    "src/utils/helpers.js": "export const add = (a, b) => a + b;\n",
    "contracts/Portfolio.sol": "contract Portfolio {}\n",
    "scripts/deploy.js": "deploy();\n",
    "node_modules/left-pad/index.js": "module.exports = 1;\n",
}


@pytest.fixture
def sample_project(tmp_path):
    """A small JavaScript project tree outside any git repository."""
    return write_tree(tmp_path / "project", SAMPLE_PROJECT)


@pytest.fixture
def no_git_repo(monkeypatch, tmp_path):
    """Stop git from discovering a repository above tmp_path."""
    monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path.parent))


# --- web3 fakes -----------------------------------------------------------

SIGNER_ADDRESS = "0x" + "ab" * 20
VERIFICATION_ADDRESS = "0x" + "11" * 20
PORTFOLIO_ADDRESS = "0x" + "22" * 20


class FakeCall:
    """A bound contract function: ``contract.functions.name(*args)``."""

    def __init__(self, contract, name, args):
        self.contract = contract
        self.name = name
        self.args = args

    def call(self):
        return self.contract.respond(self.name, self.args)

    def build_transaction(self, params):
        if self.name in self.contract.reject:
            raise ValueError(f"execution reverted: {self.name}")
        return {"function": self.name, "args": self.args, **params}


class FakeFunctions:
    def __init__(self, contract):
        self._contract = contract

    def __getattr__(self, name):
        return lambda *args: FakeCall(self._contract, name, args)


class Flaky:
    """Response that raises each of ``failures`` once, then returns ``value``."""

    def __init__(self, failures, value):
        self.failures = list(failures)
        self.value = value

    def __call__(self, *args):
        if self.failures:
            raise self.failures.pop(0)
        return self.value


class FakeContract:
    """Answers reads from a table of values, callables or exceptions."""

    def __init__(self, address, responses):
        self.address = address
        self.responses = responses
        self.functions = FakeFunctions(self)
        self.calls = []
        self.reject = set()

    def respond(self, name, args):
        self.calls.append((name, args))
        value = self.responses[name]
        if isinstance(value, BaseException):
            raise value
        if callable(value):
            return value(*args)
        return value


class FakeEth:
    def __init__(self, chain_id, responses):
        self.chain_id_value = chain_id
        self.responses = responses
        self.sent = []
        self.receipt_status = 1
        self.confirm = True
        self.receipt_error = None
        self.last_contract = None

    @property
    def chain_id(self):
        if isinstance(self.chain_id_value, BaseException):
            raise self.chain_id_value
        if callable(self.chain_id_value):
            return self.chain_id_value()
        return self.chain_id_value

    def contract(self, address, abi):
        self.last_contract = FakeContract(address, self.responses)
        return self.last_contract

    def get_transaction_count(self, address, block_identifier):
        return len(self.sent)

    def send_raw_transaction(self, raw):
        self.sent.append(raw)
        return bytes([len(self.sent)]) * 32

    def wait_for_transaction_receipt(self, tx_hash, timeout):
        if self.receipt_error is not None:
            raise self.receipt_error
        if not self.confirm:
            raise TimeExhausted(f"Transaction {tx_hash!r} is not in the chain after {timeout} seconds")
        return {"status": self.receipt_status, "blockNumber": 1000 + tx_hash[0], "gasUsed": 50000}


class FakeWeb3:
    def __init__(self, chain_id=137, responses=None):
        self.eth = FakeEth(chain_id, {} if responses is None else responses)


class FakeSigned:
    def __init__(self, raw_transaction):
        self.raw_transaction = raw_transaction


class FakeAccount:
    """Local account stand-in; records every transaction it signs."""

    address = SIGNER_ADDRESS

    def __init__(self):
        self.signed = []

    def sign_transaction(self, tx):
        self.signed.append(tx)
        return FakeSigned(repr(tx).encode("utf-8"))


@pytest.fixture
def fake_web3():
    return FakeWeb3()


@pytest.fixture
def fake_account():
    return FakeAccount()


@pytest.fixture
def fast_retry():
    """Retry policy with no delay between attempts."""
    return create_retry_policy(max_attempts=3, base_delay=0, max_delay=0)


def pytest_sessionfinish(session, exitstatus):
    """Best-effort cleanup for basetemp on Windows without patching pytest internals."""
    if os.name != "nt":
        return
    basetemp = getattr(session.config.option, "basetemp", None)
    if not basetemp:
        return
    basetemp_path = Path(basetemp)
    if not basetemp_path.exists():
        return
    try:
        import shutil
        shutil.rmtree(basetemp_path)
    except (PermissionError, OSError):
        # If cleanup fails, let it surface as a warning rather than masking errors.
        import warnings
        warnings.warn(f"Could not remove basetemp: {basetemp_path}")
