"""Contract ABI fragments.

Only the functions codeanchor calls are described. Portfolio struct outputs
are generated from the layouts in ``codeanchor.kernel.portfolio`` so the read
path and the digest encoder cannot disagree.
"""

from typing import Any, Dict, List, Sequence, Tuple

from codeanchor.kernel.portfolio import (
    ACHIEVEMENT_LAYOUT,
    CERTIFICATION_LAYOUT,
    CONTACT_FIELDS,
    EDUCATION_LAYOUT,
    EXPERIENCE_LAYOUT,
    FOCUS_AREA_LAYOUT,
    PROJECT_LAYOUT,
    RESEARCH_LAYOUT,
    StructLayout,
)

AbiEntry = Dict[str, Any]


def _param(name: str, abi_type: str) -> Dict[str, str]:
    return {"name": name, "type": abi_type, "internalType": abi_type}


def _function(
    name: str,
    inputs: Sequence[Tuple[str, str]] = (),
    outputs: Sequence[Dict[str, Any]] = (),
    mutability: str = "view",
) -> AbiEntry:
    return {
        "type": "function",
        "name": name,
        "inputs": [_param(n, t) for n, t in inputs],
        "outputs": list(outputs),
        "stateMutability": mutability,
    }


def _tuple_output(name: str, components: Sequence[Tuple[str, str]], array: bool = False) -> Dict[str, Any]:
    return {
        "name": name,
        "type": "tuple[]" if array else "tuple",
        "components": [_param(n, t) for n, t in components],
    }


def _layout_output(layout: StructLayout) -> Dict[str, Any]:
    return _tuple_output("", [(f.name, f.abi_type) for f in layout.fields], array=True)


# ProjectVerification

CODEBASE_HASH_COMPONENTS: List[Tuple[str, str]] = [
    ("projectName", "string"),
    ("version", "string"),
    ("gitCommitHash", "string"),
    ("sourceCodeHash", "string"),
    ("dependenciesHash", "string"),
    ("configHash", "string"),
    ("buildArtifactsHash", "string"),
    ("deploymentHash", "string"),
    ("timestamp", "uint256"),
    ("submitter", "address"),
]

SECURITY_REPORT_COMPONENTS: List[Tuple[str, str]] = [
    ("projectName", "string"),
    ("version", "string"),
    ("vulnerabilitiesFound", "uint256"),
    ("securityScanHash", "bytes32"),
    ("securityTools", "string[]"),
    ("isPassing", "bool"),
    ("timestamp", "uint256"),
]

DEPLOYMENT_COMPONENTS: List[Tuple[str, str]] = [
    ("projectName", "string"),
    ("version", "string"),
    ("environment", "string"),
    ("contractAddress", "address"),
    ("deployer", "address"),
    ("transactionHash", "string"),
    ("gasUsed", "uint256"),
    ("timestamp", "uint256"),
]

_PROJECT_KEY = [("projectName", "string")]
_PROJECT_VERSION_KEY = [("projectName", "string"), ("version", "string")]

VERIFICATION_ABI: List[AbiEntry] = [
    _function(
        "storeCodebaseHash",
        CODEBASE_HASH_COMPONENTS[:8],
        mutability="nonpayable",
    ),
    _function(
        "storeSecurityReport",
        [
            ("projectName", "string"),
            ("version", "string"),
            ("vulnerabilitiesFound", "uint256"),
            ("securityScanHash", "bytes32"),
            ("securityTools", "string[]"),
            ("isPassing", "bool"),
        ],
        mutability="nonpayable",
    ),
    _function(
        "recordDeployment",
        [
            ("projectName", "string"),
            ("version", "string"),
            ("environment", "string"),
            ("contractAddress", "address"),
            ("transactionHash", "string"),
            ("gasUsed", "uint256"),
        ],
        mutability="nonpayable",
    ),
    _function(
        "getVerificationStatus",
        _PROJECT_VERSION_KEY,
        [
            _param("hasCodebaseHash", "bool"),
            _param("hasSecurityReport", "bool"),
            _param("securityPassing", "bool"),
            _param("hasDeployment", "bool"),
            _param("isVerified", "bool"),
        ],
    ),
    _function("getLatestCodebaseHash", _PROJECT_KEY, [_tuple_output("", CODEBASE_HASH_COMPONENTS)]),
    _function("getLatestSecurityReport", _PROJECT_KEY, [_tuple_output("", SECURITY_REPORT_COMPONENTS)]),
    _function("getLatestDeployment", _PROJECT_KEY, [_tuple_output("", DEPLOYMENT_COMPONENTS)]),
    _function("getDeploymentCount", _PROJECT_KEY, [_param("", "uint256")]),
]


# Portfolio

PORTFOLIO_ABI: List[AbiEntry] = [
    _function("name", outputs=[_param("", "string")]),
    _function("title", outputs=[_param("", "string")]),
    _function("summary", outputs=[_param("", "string")]),
    _function("getContact", outputs=[_param(f, "string") for f in CONTACT_FIELDS]),
    _function("getSkills", [("category", "string")], [_param("", "string[]")]),
    _function("getExperiences", outputs=[_layout_output(EXPERIENCE_LAYOUT)]),
    _function("getProjects", outputs=[_layout_output(PROJECT_LAYOUT)]),
    _function("getResearchPapers", outputs=[_layout_output(RESEARCH_LAYOUT)]),
    _function("getCertifications", outputs=[_layout_output(CERTIFICATION_LAYOUT)]),
    _function("getEducationHistory", outputs=[_layout_output(EDUCATION_LAYOUT)]),
    _function("getAchievements", outputs=[_layout_output(ACHIEVEMENT_LAYOUT)]),
    _function("getAcademicFocusAreas", outputs=[_layout_output(FOCUS_AREA_LAYOUT)]),
    _function("getDataHash", outputs=[_param("", "bytes32")]),
]
