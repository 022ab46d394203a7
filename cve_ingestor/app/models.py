"""CVE 레코드 데이터 모델(CVE record data models).

Typed, read-only view of one CVE JSON 5.x document. JSON keys are camelCase;
attributes are snake_case. Unknown keys are ignored, absent lists are empty,
and every timestamp is clamped into the storable range on construction.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Discriminator, Field, Tag, model_validator
from pydantic.alias_generators import to_camel

from common_lib.timestamps import clamp_timestamp

Timestamp = Annotated[Optional[datetime], BeforeValidator(clamp_timestamp)]


class CveModel(BaseModel):
    """CVE 모델 공통 설정(Shared configuration for CVE models)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


class CveState(str, Enum):
    """CVE 레코드 상태(CVE record lifecycle state)."""

    RESERVED = "RESERVED"
    PUBLISHED = "PUBLISHED"
    REJECTED = "REJECTED"


class ProviderMetadata(CveModel):
    """제공자 메타데이터(Provider metadata shared by CNA and ADP containers)."""

    org_id: Optional[str] = None
    short_name: Optional[str] = None
    date_updated: Timestamp = None


class CveMetadata(CveModel):
    """CVE 메타데이터(CVE metadata block)."""

    cve_id: Optional[str] = Field(default=None, description="CVE 식별자(CVE identifier)")
    assigner_org_id: Optional[str] = None
    assigner_short_name: Optional[str] = None
    requester_user_id: Optional[str] = None
    serial: Optional[int] = None
    state: Optional[CveState] = None
    date_reserved: Timestamp = None
    date_published: Timestamp = None
    date_updated: Timestamp = None
    date_rejected: Timestamp = None


# --- CNA container children -------------------------------------------------


class ProblemTypeDescription(CveModel):
    lang: Optional[str] = None
    description: Optional[str] = None
    cwe_id: Optional[str] = None
    type: Optional[str] = None


class ProblemType(CveModel):
    descriptions: List[ProblemTypeDescription] = Field(default_factory=list)


class VersionChange(CveModel):
    """버전 상태 변경(Status change within a version range)."""

    at: Optional[str] = None
    status: Optional[str] = None


class Version(CveModel):
    """버전 항목(Version entry or range bound)."""

    version: Optional[str] = None
    status: Optional[str] = None
    less_than: Optional[str] = None
    less_than_or_equal: Optional[str] = None
    version_type: Optional[str] = None
    changes: List[VersionChange] = Field(default_factory=list)


class ProgramRoutine(CveModel):
    name: Optional[str] = None


class Affected(CveModel):
    """영향 받는 제품(Affected product)."""

    vendor: Optional[str] = None
    product: Optional[str] = None
    default_status: Optional[str] = None
    repo: Optional[str] = None
    collection_url: Optional[str] = Field(default=None, alias="collectionURL")
    package_name: Optional[str] = None
    versions: List[Version] = Field(default_factory=list)
    modules: List[str] = Field(default_factory=list)
    cpes: List[str] = Field(default_factory=list)
    platforms: List[str] = Field(default_factory=list)
    program_files: List[str] = Field(default_factory=list)
    program_routines: List[ProgramRoutine] = Field(default_factory=list)


class SupportingMedia(CveModel):
    type: Optional[str] = None
    base64: bool = False
    value: Optional[str] = None


class Description(CveModel):
    """언어별 설명(Language-tagged description)."""

    lang: Optional[str] = None
    value: Optional[str] = None
    supporting_media: List[SupportingMedia] = Field(default_factory=list)


class CvssV2_0(CveModel):
    version: Optional[str] = None
    base_score: Optional[float] = None
    vector_string: Optional[str] = None
    access_vector: Optional[str] = None
    access_complexity: Optional[str] = None
    authentication: Optional[str] = None
    confidentiality_impact: Optional[str] = None
    integrity_impact: Optional[str] = None
    availability_impact: Optional[str] = None


class CvssV3(CveModel):
    """CVSS v3.x 공통 필드(Fields shared by CVSS v3.0 and v3.1)."""

    version: Optional[str] = None
    base_score: Optional[float] = None
    base_severity: Optional[str] = None
    vector_string: Optional[str] = None
    attack_vector: Optional[str] = None
    attack_complexity: Optional[str] = None
    privileges_required: Optional[str] = None
    user_interaction: Optional[str] = None
    scope: Optional[str] = None
    confidentiality_impact: Optional[str] = None
    integrity_impact: Optional[str] = None
    availability_impact: Optional[str] = None


class CvssV3_0(CvssV3):
    pass


class CvssV3_1(CvssV3):
    pass


class CvssV4_0(CveModel):
    version: Optional[str] = None
    base_score: Optional[float] = None
    base_severity: Optional[str] = None
    vector_string: Optional[str] = None
    attack_vector: Optional[str] = None
    attack_complexity: Optional[str] = None
    attack_requirements: Optional[str] = None
    privileges_required: Optional[str] = None
    user_interaction: Optional[str] = None
    vuln_confidentiality_impact: Optional[str] = None
    vuln_integrity_impact: Optional[str] = None
    vuln_availability_impact: Optional[str] = None
    sub_confidentiality_impact: Optional[str] = None
    sub_integrity_impact: Optional[str] = None
    sub_availability_impact: Optional[str] = None
    # The CVSS 4.0 JSON schema capitalizes these three supplemental metrics
    automatable: Optional[str] = Field(default=None, alias="Automatable")
    recovery: Optional[str] = Field(default=None, alias="Recovery")
    safety: Optional[str] = Field(default=None, alias="Safety")
    provider_urgency: Optional[str] = None
    value_density: Optional[str] = None
    vulnerability_response_effort: Optional[str] = None


class CvssPayloads(CveModel):
    """상호 배타적 CVSS 페이로드(Mutually exclusive CVSS payload slots)."""

    cvss_v2_0: Optional[CvssV2_0] = Field(default=None, alias="cvssV2_0")
    cvss_v3_0: Optional[CvssV3_0] = Field(default=None, alias="cvssV3_0")
    cvss_v3_1: Optional[CvssV3_1] = Field(default=None, alias="cvssV3_1")
    cvss_v4_0: Optional[CvssV4_0] = Field(default=None, alias="cvssV4_0")


class MetricScenario(CveModel):
    lang: Optional[str] = None
    value: Optional[str] = None


class Metric(CvssPayloads):
    """CNA 점수 지표(CNA scoring metric)."""

    format: Optional[str] = None
    scenarios: List[MetricScenario] = Field(default_factory=list)


class TimelineEntry(CveModel):
    time: Timestamp = None
    lang: Optional[str] = None
    value: Optional[str] = None


class Credit(CveModel):
    lang: Optional[str] = None
    type: Optional[str] = None
    value: Optional[str] = None
    user: Optional[str] = None


class Reference(CveModel):
    url: Optional[str] = None
    name: Optional[str] = None
    tags: List[str] = Field(default_factory=list)


class CveSource(CveModel):
    discovery: Optional[str] = None


class CnaContainer(CveModel):
    """CNA 컨테이너(CNA container, the authoritative submission)."""

    provider_metadata: Optional[ProviderMetadata] = None
    title: Optional[str] = None
    date_public: Timestamp = None
    date_assigned: Timestamp = None
    source: Optional[CveSource] = None
    problem_types: List[ProblemType] = Field(default_factory=list)
    affected: List[Affected] = Field(default_factory=list)
    descriptions: List[Description] = Field(default_factory=list)
    metrics: List[Metric] = Field(default_factory=list)
    timeline: List[TimelineEntry] = Field(default_factory=list)
    credits: List[Credit] = Field(default_factory=list)
    references: List[Reference] = Field(default_factory=list)


# --- ADP container ------------------------------------------------------------


class SsvcOption(CveModel):
    """SSVC 결정 항목(One SSVC decision point)."""

    exploitation: Optional[str] = Field(default=None, alias="Exploitation")
    automatable: Optional[str] = Field(default=None, alias="Automatable")
    technical_impact: Optional[str] = Field(default=None, alias="Technical Impact")


class SsvcContent(CveModel):
    id: Optional[str] = None
    timestamp: Timestamp = None
    role: Optional[str] = None
    version: Optional[str] = None
    options: List[SsvcOption] = Field(default_factory=list)


class SsvcMetric(CveModel):
    """SSVC 지표(SSVC payload of an ADP "other" metric)."""

    type: Literal["ssvc"] = "ssvc"
    content: Optional[SsvcContent] = None


class UnknownMetric(CveModel):
    """지원하지 않는 지표(Unsupported "other" scheme; only the tag is kept)."""

    type: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def keep_tag_only(cls, value: Any) -> Any:
        if isinstance(value, cls):
            return value
        if not isinstance(value, dict):
            return {}
        kind = value.get("type")
        return {"type": kind} if isinstance(kind, str) else {}


def _other_metric_kind(value: Any) -> str:
    """Read the ``type`` tag before the rest of an "other" payload is decoded."""
    if isinstance(value, dict):
        kind = value.get("type")
    else:
        kind = getattr(value, "type", None)
    return "ssvc" if kind == "ssvc" else "unknown"


OtherMetric = Annotated[
    Union[
        Annotated[SsvcMetric, Tag("ssvc")],
        Annotated[UnknownMetric, Tag("unknown")],
    ],
    Discriminator(_other_metric_kind),
]


class AdpMetric(CvssPayloads):
    """ADP 지표(ADP metric: a CVSS payload or an "other" scheme)."""

    other: Optional[OtherMetric] = None


class AdpContainer(CveModel):
    """ADP 컨테이너(ADP container, supplementary publisher data)."""

    title: Optional[str] = None
    provider_metadata: Optional[ProviderMetadata] = None
    metrics: List[AdpMetric] = Field(default_factory=list)


class Containers(CveModel):
    cna: Optional[CnaContainer] = None
    adp: List[AdpContainer] = Field(default_factory=list)


class CveRecord(CveModel):
    """CVE 레코드 루트(Root of one CVE JSON 5.x document)."""

    data_type: Optional[str] = None
    data_version: Optional[str] = None
    cve_metadata: Optional[CveMetadata] = None
    containers: Optional[Containers] = None

    @property
    def cve_id(self) -> Optional[str]:
        return self.cve_metadata.cve_id if self.cve_metadata else None
