"""CVE 레코드 저장소(Relational writer for CVE records).

Decomposes one CveRecord into an ordered, depth-first sequence of INSERTs.
Each parent insert is followed by the provider's last-insert-id statement on
the same connection, and the returned surrogate key is passed down to the
children as a plain argument. The whole sequence runs in one transaction:
any failure rolls back every row written for that record.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, Optional, Tuple

from sqlalchemy import DateTime, bindparam, text
from sqlalchemy.engine import Connection

from common_lib.db import ConnectionProvider
from common_lib.errors import WriteError
from common_lib.logger import get_logger

from .models import (
    AdpContainer,
    AdpMetric,
    Affected,
    CnaContainer,
    CveMetadata,
    CveModel,
    CveRecord,
    CvssPayloads,
    Description,
    Metric,
    ProblemType,
    ProviderMetadata,
    Reference,
    SsvcContent,
    SsvcMetric,
    Version,
)

logger = get_logger(__name__)

# Newest scoring version first; decides which slot wins when a document fills several
CVSS_TABLES: Tuple[Tuple[str, str], ...] = (
    ("cvss_v4_0", "CvssV4_0"),
    ("cvss_v3_1", "CvssV3_1"),
    ("cvss_v3_0", "CvssV3_0"),
    ("cvss_v2_0", "CvssV2_0"),
)

Row = Dict[str, Any]


def column_name(field_name: str) -> str:
    """Map a model field to its column name (``base_score`` -> ``BaseScore``)."""
    return "".join(part[:1].upper() + part[1:] for part in field_name.split("_"))


def select_cvss_payload(payloads: CvssPayloads) -> Optional[Tuple[str, CveModel]]:
    """
    Pick the single CVSS payload to persist for a metric.

    Returns:
        (table name, payload) for the newest populated version, or None when
        no CVSS slot is populated
    """
    populated = [(table, getattr(payloads, attr)) for attr, table in CVSS_TABLES if getattr(payloads, attr) is not None]
    if not populated:
        return None
    if len(populated) > 1:
        logger.warning(
            "Metric populates %d CVSS versions (%s); persisting only %s",
            len(populated),
            ", ".join(table for table, _ in populated),
            populated[0][0],
        )
    return populated[0]


class CveRecordRepository:
    """CVE 레코드 삽입 레이어(Storage layer writing one CVE record per transaction)."""

    def __init__(self, provider: ConnectionProvider) -> None:
        self._provider = provider

    def write(self, record: CveRecord) -> int:
        """
        레코드 저장(Persist one record atomically).

        Args:
            record: Mapped CVE record

        Returns:
            Surrogate key of the inserted CveMetadata row

        Raises:
            WriteError: any statement failed; nothing from this record was kept
        """

        cve_id = record.cve_id
        if record.cve_metadata is None:
            raise WriteError(cve_id, "record has no cveMetadata block")

        try:
            with self._provider.open_connection() as connection:
                with connection.begin():
                    metadata_id = self._insert_record(connection, record)
        except Exception as exc:
            logger.error("Rolled back %s: %s", cve_id, exc)
            raise WriteError(cve_id, str(exc)) from exc

        logger.info("Persisted %s (CveMetadata id=%d)", cve_id, metadata_id)
        return metadata_id

    # --- statement helpers ----------------------------------------------------

    def _insert(self, connection: Connection, table: str, row: Row) -> None:
        columns = ", ".join(row)
        placeholders = ", ".join(f":{column}" for column in row)
        statement = text(f"INSERT INTO {table} ({columns}) VALUES ({placeholders})")
        typed = [bindparam(column, type_=DateTime()) for column, value in row.items() if isinstance(value, datetime)]
        if typed:
            statement = statement.bindparams(*typed)
        connection.execute(statement, row)

    def _insert_parent(self, connection: Connection, table: str, row: Row) -> int:
        """Insert a row whose children need its key, and return that key."""
        self._insert(connection, table, row)
        generated = connection.execute(self._provider.last_insert_id_statement()).scalar_one()
        if generated is None:
            raise RuntimeError(f"No identity returned after insert into {table}")
        return int(generated)

    def _insert_values(self, connection: Connection, table: str, parent: Tuple[str, int], column: str, values: Iterable[Any]) -> None:
        parent_column, parent_id = parent
        for value in values:
            self._insert(connection, table, {parent_column: parent_id, column: value})

    # --- record / containers ----------------------------------------------------

    def _insert_record(self, connection: Connection, record: CveRecord) -> int:
        metadata_id = self._insert_metadata(connection, record.cve_metadata)
        root_id = self._insert_parent(
            connection,
            "RootCve",
            {"CveMetadataId": metadata_id, "DataType": record.data_type, "DataVersion": record.data_version},
        )

        containers = record.containers
        if containers is None:
            return metadata_id
        containers_id = self._insert_parent(connection, "Containers", {"RootCveId": root_id})

        if containers.cna is not None:
            self._insert_cna(connection, containers.cna, containers_id)
        for adp in containers.adp:
            self._insert_adp(connection, adp, containers_id)
        return metadata_id

    def _insert_metadata(self, connection: Connection, metadata: CveMetadata) -> int:
        return self._insert_parent(
            connection,
            "CveMetadata",
            {
                "CveId": metadata.cve_id,
                "AssignerOrgId": metadata.assigner_org_id,
                "AssignerShortName": metadata.assigner_short_name,
                "RequesterUserId": metadata.requester_user_id,
                "Serial": metadata.serial,
                "State": metadata.state.value if metadata.state else None,
                "DateReserved": metadata.date_reserved,
                "DatePublished": metadata.date_published,
                "DateUpdated": metadata.date_updated,
                "DateRejected": metadata.date_rejected,
            },
        )

    def _insert_provider_metadata(self, connection: Connection, metadata: Optional[ProviderMetadata]) -> Optional[int]:
        if metadata is None:
            return None
        return self._insert_parent(
            connection,
            "ProviderMetadata",
            {"OrgId": metadata.org_id, "ShortName": metadata.short_name, "DateUpdated": metadata.date_updated},
        )

    # --- CNA ----------------------------------------------------------------------

    def _insert_cna(self, connection: Connection, cna: CnaContainer, containers_id: int) -> int:
        provider_id = self._insert_provider_metadata(connection, cna.provider_metadata)
        cna_id = self._insert_parent(
            connection,
            "CnaContainer",
            {
                "ContainersId": containers_id,
                "ProviderMetadataId": provider_id,
                "Title": cna.title,
                "DatePublic": cna.date_public,
                "DateAssigned": cna.date_assigned,
                "Discovery": cna.source.discovery if cna.source else None,
            },
        )

        for affected in cna.affected:
            self._insert_affected(connection, affected, cna_id)
        for description in cna.descriptions:
            self._insert_description(connection, description, cna_id)
        for metric in cna.metrics:
            self._insert_metric(connection, metric, cna_id)
        for entry in cna.timeline:
            self._insert(connection, "TimelineEntry", {"CnaId": cna_id, "Time": entry.time, "Language": entry.lang, "Value": entry.value})
        for credit in cna.credits:
            self._insert(
                connection,
                "Credit",
                {"CnaId": cna_id, "Language": credit.lang, "Type": credit.type, "Value": credit.value, "UserName": credit.user},
            )
        for reference in cna.references:
            self._insert_reference(connection, reference, cna_id)
        for problem_type in cna.problem_types:
            self._insert_problem_type(connection, problem_type, cna_id)
        return cna_id

    def _insert_affected(self, connection: Connection, affected: Affected, cna_id: int) -> None:
        affected_id = self._insert_parent(
            connection,
            "Affected",
            {
                "CnaId": cna_id,
                "Vendor": affected.vendor,
                "Product": affected.product,
                "DefaultStatus": affected.default_status,
                "Repo": affected.repo,
                "CollectionUrl": affected.collection_url,
                "PackageName": affected.package_name,
            },
        )
        parent = ("AffectedId", affected_id)

        for version in affected.versions:
            self._insert_version(connection, version, affected_id)
        self._insert_values(connection, "Modules", parent, "ModuleName", affected.modules)
        self._insert_values(connection, "Cpes", parent, "Cpe", affected.cpes)
        self._insert_values(connection, "Platforms", parent, "Platform", affected.platforms)
        self._insert_values(connection, "ProgramFiles", parent, "FilePath", affected.program_files)
        self._insert_values(connection, "ProgramRoutines", parent, "RoutineName", (routine.name for routine in affected.program_routines))

    def _insert_version(self, connection: Connection, version: Version, affected_id: int) -> None:
        row = {
            "AffectedId": affected_id,
            "VersionValue": version.version,
            "Status": version.status,
            "LessThan": version.less_than,
            "LessThanOrEqual": version.less_than_or_equal,
            "VersionType": version.version_type,
        }
        if not version.changes:
            self._insert(connection, "Versions", row)
            return

        version_id = self._insert_parent(connection, "Versions", row)
        for change in version.changes:
            self._insert(connection, "VersionChanges", {"VersionId": version_id, "ChangeAt": change.at, "ChangeStatus": change.status})

    def _insert_description(self, connection: Connection, description: Description, cna_id: int) -> None:
        row = {"CnaId": cna_id, "Language": description.lang, "Value": description.value}
        if not description.supporting_media:
            self._insert(connection, "Description", row)
            return

        description_id = self._insert_parent(connection, "Description", row)
        for media in description.supporting_media:
            self._insert(
                connection,
                "SupportingMedia",
                {"DescriptionId": description_id, "Type": media.type, "Base64": media.base64, "Value": media.value},
            )

    def _insert_metric(self, connection: Connection, metric: Metric, cna_id: int) -> None:
        metric_id = self._insert_parent(connection, "Metric", {"CnaId": cna_id, "Format": metric.format})
        self._insert_cvss(connection, metric, ("MetricId", metric_id))
        for scenario in metric.scenarios:
            self._insert(connection, "MetricScenario", {"MetricId": metric_id, "Language": scenario.lang, "Value": scenario.value})

    def _insert_cvss(self, connection: Connection, payloads: CvssPayloads, parent: Tuple[str, int]) -> None:
        selected = select_cvss_payload(payloads)
        if selected is None:
            return
        table, payload = selected
        parent_column, parent_id = parent
        row: Row = {"MetricId": None, "AdpMetricId": None}
        row[parent_column] = parent_id
        row.update({column_name(field): value for field, value in payload.model_dump().items()})
        self._insert(connection, table, row)

    def _insert_reference(self, connection: Connection, reference: Reference, cna_id: int) -> None:
        row = {"CnaId": cna_id, "Url": reference.url, "Name": reference.name}
        if not reference.tags:
            self._insert(connection, "Reference", row)
            return

        reference_id = self._insert_parent(connection, "Reference", row)
        self._insert_values(connection, "ReferenceTags", ("ReferenceId", reference_id), "Tag", reference.tags)

    def _insert_problem_type(self, connection: Connection, problem_type: ProblemType, cna_id: int) -> None:
        problem_type_id = self._insert_parent(connection, "ProblemType", {"CnaId": cna_id})
        for description in problem_type.descriptions:
            self._insert(
                connection,
                "ProblemTypeDescription",
                {
                    "ProblemTypeId": problem_type_id,
                    "Language": description.lang,
                    "Description": description.description,
                    "CweId": description.cwe_id,
                    "Type": description.type,
                },
            )

    # --- ADP ----------------------------------------------------------------------

    def _insert_adp(self, connection: Connection, adp: AdpContainer, containers_id: int) -> int:
        provider_id = self._insert_provider_metadata(connection, adp.provider_metadata)
        adp_id = self._insert_parent(
            connection,
            "AdpContainer",
            {"ContainersId": containers_id, "ProviderMetadataId": provider_id, "Title": adp.title},
        )
        for metric in adp.metrics:
            self._insert_adp_metric(connection, metric, adp_id)
        return adp_id

    def _insert_adp_metric(self, connection: Connection, metric: AdpMetric, adp_id: int) -> None:
        adp_metric_id = self._insert_parent(connection, "AdpMetric", {"AdpId": adp_id})
        self._insert_cvss(connection, metric, ("AdpMetricId", adp_metric_id))

        # Only SSVC has tables; UnknownMetric payloads are not persisted
        if isinstance(metric.other, SsvcMetric):
            self._insert_ssvc(connection, metric.other, adp_metric_id)

    def _insert_ssvc(self, connection: Connection, ssvc: SsvcMetric, adp_metric_id: int) -> None:
        ssvc_id = self._insert_parent(connection, "Ssvc", {"AdpMetricId": adp_metric_id, "Type": ssvc.type})
        if ssvc.content is not None:
            self._insert_ssvc_content(connection, ssvc.content, ssvc_id)

    def _insert_ssvc_content(self, connection: Connection, content: SsvcContent, ssvc_id: int) -> None:
        content_id = self._insert_parent(
            connection,
            "SsvcContent",
            {
                "SsvcId": ssvc_id,
                "SsvcIdentifier": content.id,
                "Timestamp": content.timestamp,
                "Role": content.role,
                "Version": content.version,
            },
        )
        for option in content.options:
            self._insert(
                connection,
                "SsvcOption",
                {
                    "SsvcContentId": content_id,
                    "Exploitation": option.exploitation,
                    "Automatable": option.automatable,
                    "TechnicalImpact": option.technical_impact,
                },
            )
