"""Portfolio content model and client-side re-verification.

The ``Portfolio`` contract stores a keccak-256 digest of its content, computed
over the ABI encoding of 22 values in a fixed order. ``PORTFOLIO_SCHEMA`` is
the only description of that order and of every struct layout: the encoder
here and the ABI used to read the contract (``codeanchor._internal.ledger.abi``)
are both derived from it. Any drift between the two would silently turn every
check into a false mismatch, so nothing else may restate the layout.
"""

import json
import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, NamedTuple, Optional, Sequence, Tuple, Type, Union

from eth_abi import encode as abi_encode
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from codeanchor.codes import IntegrityState
from codeanchor.kernel.hash_utils import keccak256_hex, normalize_hex_digest

LOGGER = logging.getLogger(__name__)

CASE_STUDY_FALLBACK_CONCLUSION = (
    "Detailed case study data is unavailable due to a parsing error."
)


class SkillCategory(str, Enum):
    """Closed set of skill categories, in encoding order."""
    LANGUAGES = "languages"
    FRAMEWORKS = "frameworks"
    DATABASES = "databases"
    CLOUD = "cloud"
    DEVOPS = "devops"
    SECURITY = "security"
    EXPERTISE = "expertise"
    OTHER = "other"


class _ContentModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class Contact(_ContentModel):
    phone: str
    email: str
    linkedin: str
    github: str


class Experience(_ContentModel):
    title: str
    company: str
    dates: str
    description: List[str]


class Project(_ContentModel):
    title: str
    description: List[str]
    repo: str
    case_study: str  # raw JSON text exactly as stored on chain

    @property
    def case_study_content(self) -> Dict[str, Any]:
        """Parsed case study; malformed JSON degrades to a readable fallback."""
        try:
            parsed = json.loads(self.case_study)
        except ValueError:
            parsed = None
        if isinstance(parsed, dict):
            return parsed
        return {
            "challenge": self.case_study,
            "conclusion": CASE_STUDY_FALLBACK_CONCLUSION,
        }


class Research(_ContentModel):
    title: str
    date: str
    description: List[str]
    link: str


class Certification(_ContentModel):
    name: str
    date: str
    issuer: str
    link: str
    description: List[str]


class Education(_ContentModel):
    degree: str
    university: str
    dates: str
    gpa: str


class Achievement(_ContentModel):
    title: str
    date: str
    description: List[str]


class FocusArea(_ContentModel):
    title: str
    description: str
    icon_name: str


class PortfolioData(_ContentModel):
    """Full portfolio content as read from the ledger."""
    name: str
    title: str
    summary: str
    contact: Contact
    skills: Dict[SkillCategory, List[str]] = Field(default_factory=dict)
    experience: List[Experience] = Field(default_factory=list)
    projects: List[Project] = Field(default_factory=list)
    research: List[Research] = Field(default_factory=list)
    certifications: List[Certification] = Field(default_factory=list)
    education: List[Education] = Field(default_factory=list)
    achievements: List[Achievement] = Field(default_factory=list)
    academic_focus: List[FocusArea] = Field(default_factory=list)

    def skills_for(self, category: SkillCategory) -> List[str]:
        return list(self.skills.get(category, []))


class StructField(NamedTuple):
    name: str  # component name in the contract ABI
    attr: str  # attribute on the Python model
    abi_type: str


class StructLayout:
    """Field order and types of one contract struct."""

    def __init__(self, model: Type[_ContentModel], fields: Sequence[StructField]):
        self.model = model
        self.fields = tuple(fields)

    @property
    def abi_type(self) -> str:
        return "(" + ",".join(f.abi_type for f in self.fields) + ")"

    def to_tuple(self, item: _ContentModel) -> Tuple[Any, ...]:
        return tuple(getattr(item, f.attr) for f in self.fields)

    def from_tuple(self, values: Sequence[Any]) -> _ContentModel:
        if len(values) != len(self.fields):
            raise ValueError(
                f"{self.model.__name__} expects {len(self.fields)} values, got {len(values)}"
            )
        return self.model(**{f.attr: _plain(v) for f, v in zip(self.fields, values)})


def _plain(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


EXPERIENCE_LAYOUT = StructLayout(Experience, [
    StructField("title", "title", "string"),
    StructField("company", "company", "string"),
    StructField("dates", "dates", "string"),
    StructField("description", "description", "string[]"),
])
PROJECT_LAYOUT = StructLayout(Project, [
    StructField("title", "title", "string"),
    StructField("description", "description", "string[]"),
    StructField("repo", "repo", "string"),
    StructField("caseStudy", "case_study", "string"),
])
RESEARCH_LAYOUT = StructLayout(Research, [
    StructField("title", "title", "string"),
    StructField("date", "date", "string"),
    StructField("description", "description", "string[]"),
    StructField("link", "link", "string"),
])
CERTIFICATION_LAYOUT = StructLayout(Certification, [
    StructField("name", "name", "string"),
    StructField("date", "date", "string"),
    StructField("issuer", "issuer", "string"),
    StructField("link", "link", "string"),
    StructField("description", "description", "string[]"),
])
EDUCATION_LAYOUT = StructLayout(Education, [
    StructField("degree", "degree", "string"),
    StructField("university", "university", "string"),
    StructField("dates", "dates", "string"),
    StructField("gpa", "gpa", "string"),
])
ACHIEVEMENT_LAYOUT = StructLayout(Achievement, [
    StructField("title", "title", "string"),
    StructField("date", "date", "string"),
    StructField("description", "description", "string[]"),
])
FOCUS_AREA_LAYOUT = StructLayout(FocusArea, [
    StructField("title", "title", "string"),
    StructField("description", "description", "string"),
    StructField("iconName", "icon_name", "string"),
])

CONTACT_FIELDS: Tuple[str, ...] = ("phone", "email", "linkedin", "github")


class SchemaEntry(NamedTuple):
    label: str
    abi_type: str
    extract: Callable[[PortfolioData], Any]
    layout: Optional[StructLayout] = None  # set for struct arrays


def _contact_entry(field: str) -> SchemaEntry:
    return SchemaEntry(f"contact.{field}", "string", lambda d: getattr(d.contact, field))


def _skills_entry(category: SkillCategory) -> SchemaEntry:
    return SchemaEntry(f"skills.{category.value}", "string[]", lambda d: d.skills_for(category))


def _struct_array_entry(attr: str, layout: StructLayout) -> SchemaEntry:
    return SchemaEntry(
        attr,
        layout.abi_type + "[]",
        lambda d: [layout.to_tuple(item) for item in getattr(d, attr)],
        layout,
    )


PORTFOLIO_SCHEMA: Tuple[SchemaEntry, ...] = (
    SchemaEntry("name", "string", lambda d: d.name),
    SchemaEntry("title", "string", lambda d: d.title),
    SchemaEntry("summary", "string", lambda d: d.summary),
    *(_contact_entry(f) for f in CONTACT_FIELDS),
    *(_skills_entry(c) for c in SkillCategory),
    _struct_array_entry("experience", EXPERIENCE_LAYOUT),
    _struct_array_entry("projects", PROJECT_LAYOUT),
    _struct_array_entry("research", RESEARCH_LAYOUT),
    _struct_array_entry("certifications", CERTIFICATION_LAYOUT),
    _struct_array_entry("education", EDUCATION_LAYOUT),
    _struct_array_entry("achievements", ACHIEVEMENT_LAYOUT),
    _struct_array_entry("academic_focus", FOCUS_AREA_LAYOUT),
)


def _coerce(data: Union[PortfolioData, Mapping[str, Any]]) -> PortfolioData:
    if isinstance(data, PortfolioData):
        return data
    return PortfolioData.model_validate(data)


def encode_portfolio(data: Union[PortfolioData, Mapping[str, Any]]) -> bytes:
    """ABI-encode portfolio content in schema order.

    Raises:
        pydantic.ValidationError: If a mapping does not describe valid content
        eth_abi.exceptions.EncodingError: If a value does not fit its ABI type
    """
    data = _coerce(data)
    types = [entry.abi_type for entry in PORTFOLIO_SCHEMA]
    values = [entry.extract(data) for entry in PORTFOLIO_SCHEMA]
    return abi_encode(types, values)


def recompute_data_hash(data: Union[PortfolioData, Mapping[str, Any]]) -> str:
    """keccak-256 of the encoded content, as ``0x`` hex."""
    return keccak256_hex(encode_portfolio(data))


def verify(data: Union[PortfolioData, Mapping[str, Any]], stored_digest: Union[str, bytes]) -> bool:
    """Compare a recomputed digest with the stored one.

    Never raises: content that cannot be encoded, or a malformed stored
    digest, yields False.
    """
    try:
        computed = recompute_data_hash(data)
        return computed == normalize_hex_digest(stored_digest)
    except Exception as e:
        LOGGER.warning("Portfolio digest could not be recomputed: %s", e)
        return False


class IntegrityCheck(BaseModel):
    """Result of one re-verification attempt.

    A check that has not run yet is ``PENDING``; ``check_integrity`` always
    returns one of the three settled states.
    """
    state: IntegrityState = IntegrityState.PENDING
    data: Optional[PortfolioData] = None
    computed_hash: Optional[str] = None
    stored_hash: Optional[str] = None
    error: Optional[str] = None

    @property
    def is_verified(self) -> bool:
        return self.state is IntegrityState.VERIFIED


def check_integrity(
    load_data: Callable[[], PortfolioData],
    load_digest: Callable[[], Union[str, bytes]],
) -> IntegrityCheck:
    """Load live content and its stored digest, then compare.

    A failure to read either side is ``UNAVAILABLE``; it is never reported as
    a mismatch. Content that was read is returned even when the digest is
    missing, so it can still be displayed.
    """
    try:
        data = load_data()
    except Exception as e:
        LOGGER.error("Failed to fetch portfolio data: %s", e)
        return IntegrityCheck(state=IntegrityState.UNAVAILABLE, error=str(e))

    try:
        stored = normalize_hex_digest(load_digest())
    except Exception as e:
        LOGGER.error("Failed to fetch stored data hash: %s", e)
        return IntegrityCheck(state=IntegrityState.UNAVAILABLE, data=data, error=str(e))

    try:
        computed = recompute_data_hash(data)
    except Exception as e:
        LOGGER.warning("Portfolio digest could not be recomputed: %s", e)
        return IntegrityCheck(
            state=IntegrityState.MISMATCH, data=data, stored_hash=stored, error=str(e)
        )

    if computed == stored:
        LOGGER.info("Data integrity verified by chain digest %s", stored)
        state = IntegrityState.VERIFIED
    else:
        LOGGER.warning("Data integrity check failed: computed %s, chain %s", computed, stored)
        state = IntegrityState.MISMATCH
    return IntegrityCheck(state=state, data=data, computed_hash=computed, stored_hash=stored)
