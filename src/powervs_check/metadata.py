"""Cluster metadata read from installer (create) or CI metadata files."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from powervs_check.errors import SetupError
from powervs_check.model import ResourceKind
from powervs_check.regions import vpc_region_for


class _MetadataFile(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class PowerVSPlatformMetadata(_MetadataFile):
    base_domain: str = Field(default="", alias="BaseDomain")
    cis_instance_crn: str = Field(default="", alias="cisInstanceCRN")
    dns_instance_crn: str = Field(default="", alias="dnsInstanceCRN")
    resource_group: str = Field(default="", alias="powerVSResourceGroup")
    region: str = ""
    vpc_region: str = Field(default="", alias="vpcRegion")
    zone: str = ""
    service_instance_guid: str = Field(default="", alias="serviceInstanceGUID")
    transit_gateway_name: str = Field(default="", alias="transitGatewayName")
    vpc_name: str = Field(default="", alias="vpcName")


class CreateMetadataFile(_MetadataFile):
    """Shape of ``metadata.json`` written by the installer."""

    cluster_name: str = Field(alias="clusterName")
    cluster_id: str = Field(default="", alias="clusterID")
    infra_id: str = Field(alias="infraID")
    powervs: PowerVSPlatformMetadata = Field(default_factory=PowerVSPlatformMetadata)


class CIMetadataFile(_MetadataFile):
    """Shape of the CI pre-flight metadata file."""

    region: str = ""
    vpc_region: str = Field(default="", alias="vpcRegion")
    zone: str = ""
    resource_group: str = Field(default="", alias="resourceGroup")
    service_instance: str = Field(default="", alias="serviceInstance")
    vpc: str = ""
    transit_gateway: str = Field(default="", alias="transitGateway")


@dataclass(frozen=True, slots=True)
class ClusterMetadata:
    """Read-only view of everything discovery needs to know about a cluster."""

    cluster_name: str = ""
    infra_id: str = ""
    base_domain: str = ""
    cis_instance_crn: str = ""
    region: str = ""
    vpc_region: str = ""
    zone: str = ""
    resource_group: str = ""
    service_instance_guid: str = ""
    transit_gateway_name: str = ""
    vpc_name: str = ""
    service_instance_name: str = ""
    ci_mode: bool = False

    @classmethod
    def from_create_document(cls, document: dict[str, Any]) -> ClusterMetadata:
        try:
            parsed = CreateMetadataFile.model_validate(document)
        except ValidationError as exc:
            raise SetupError(f"Invalid cluster metadata: {exc}") from exc
        platform = parsed.powervs
        return cls(
            cluster_name=parsed.cluster_name,
            infra_id=parsed.infra_id,
            base_domain=platform.base_domain,
            cis_instance_crn=platform.cis_instance_crn,
            region=platform.region,
            vpc_region=platform.vpc_region,
            zone=platform.zone,
            resource_group=platform.resource_group,
            service_instance_guid=platform.service_instance_guid,
            transit_gateway_name=platform.transit_gateway_name,
            vpc_name=platform.vpc_name,
        )

    @classmethod
    def from_ci_document(cls, document: dict[str, Any]) -> ClusterMetadata:
        try:
            parsed = CIMetadataFile.model_validate(document)
        except ValidationError as exc:
            raise SetupError(f"Invalid CI metadata: {exc}") from exc
        return cls(
            region=parsed.region,
            vpc_region=parsed.vpc_region,
            zone=parsed.zone,
            resource_group=parsed.resource_group,
            service_instance_name=parsed.service_instance,
            vpc_name=parsed.vpc,
            transit_gateway_name=parsed.transit_gateway,
            ci_mode=True,
        )

    @classmethod
    def from_create_metadata(cls, path: str | Path) -> ClusterMetadata:
        return cls.from_create_document(_read_json(path))

    @classmethod
    def from_ci_metadata(cls, path: str | Path) -> ClusterMetadata:
        return cls.from_ci_document(_read_json(path))

    def resolved_vpc_region(self) -> str:
        """Explicit VPC region, else the one paired with the Power VS region."""
        if self.vpc_region:
            return self.vpc_region
        return vpc_region_for(self.region)

    def target_name(self, kind: ResourceKind) -> str:
        """Name discovery looks for. May be empty for optional CI targets."""
        if self.ci_mode:
            match kind:
                case ResourceKind.COMPUTE_SERVICE_INSTANCE:
                    return self.service_instance_name
                case ResourceKind.NETWORK:
                    return self.vpc_name
                case ResourceKind.TRANSIT_GATEWAY:
                    return self.transit_gateway_name
                case _:
                    raise SetupError(f"{kind.label} is not checked from CI metadata")

        match kind:
            case ResourceKind.OBJECT_STORE:
                return f"{self.infra_id}-cos"
            case ResourceKind.NETWORK:
                return self.vpc_name or f"vpc-{self.cluster_name}"
            case ResourceKind.TRANSIT_GATEWAY:
                return self.transit_gateway_name or f"{self.infra_id}-tg"
            case ResourceKind.DNS_ZONE:
                return f"{self.cluster_name}.{self.base_domain}"
            case _:
                return self.cluster_name


def _read_json(path: str | Path) -> dict[str, Any]:
    file_path = Path(path)
    try:
        with file_path.open(encoding="utf-8") as file:
            payload = json.load(file)
    except FileNotFoundError as exc:
        raise SetupError(f"Metadata file not found: {file_path}") from exc
    except json.JSONDecodeError as exc:
        raise SetupError(f"Invalid JSON in metadata file {file_path}: {exc.msg}") from exc

    if not isinstance(payload, dict):
        raise SetupError(f"Metadata file must contain a JSON object: {file_path}")
    return payload
