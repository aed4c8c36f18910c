"""Power VS regions and their VPC / object storage counterparts."""

from __future__ import annotations

from dataclasses import dataclass, field

from powervs_check.errors import SetupError


@dataclass(frozen=True, slots=True)
class PowerVSRegion:
    description: str
    vpc_region: str
    cos_region: str
    zones: dict[str, tuple[str, ...]] = field(default_factory=dict)
    vpc_zones: tuple[str, ...] = ()


REGIONS: dict[str, PowerVSRegion] = {
    "dal": PowerVSRegion(
        description="Dallas, USA",
        vpc_region="us-south",
        cos_region="us-south",
        zones={
            "dal10": ("s922", "s1022", "e980", "e1080"),
            "dal12": ("s922", "e980"),
        },
        vpc_zones=("us-south-1", "us-south-2", "us-south-3"),
    ),
    "eu-de": PowerVSRegion(
        description="Frankfurt, Germany",
        vpc_region="eu-de",
        cos_region="eu-de",
        zones={
            "eu-de-1": ("s922", "s1022", "e980"),
            "eu-de-2": ("s922", "e980"),
        },
        vpc_zones=("eu-de-1", "eu-de-2", "eu-de-3"),
    ),
    "lon": PowerVSRegion(
        description="London, UK",
        vpc_region="eu-gb",
        cos_region="eu-gb",
        zones={"lon06": ("s922", "e980")},
        vpc_zones=("eu-gb-1", "eu-gb-2", "eu-gb-3"),
    ),
    "mad": PowerVSRegion(
        description="Madrid, Spain",
        vpc_region="eu-es",
        # Object storage is not offered in mad; buckets live in eu-de.
        cos_region="eu-de",
        zones={
            "mad02": ("s922", "s1022", "e980"),
            "mad04": ("s1022", "e980", "e1080"),
        },
        vpc_zones=("eu-es-1", "eu-es-2"),
    ),
    "osa": PowerVSRegion(
        description="Osaka, Japan",
        vpc_region="jp-osa",
        cos_region="jp-osa",
        zones={"osa21": ("s922", "s1022", "e980")},
        vpc_zones=("jp-osa-1", "jp-osa-2", "jp-osa-3"),
    ),
    "sao": PowerVSRegion(
        description="Sao Paulo, Brazil",
        vpc_region="br-sao",
        cos_region="br-sao",
        zones={
            "sao01": ("s922", "e980"),
            "sao04": ("s922", "e980"),
        },
        vpc_zones=("br-sao-1", "br-sao-2", "br-sao-3"),
    ),
    "syd": PowerVSRegion(
        description="Sydney, Australia",
        vpc_region="au-syd",
        cos_region="au-syd",
        zones={
            "syd04": ("s922", "e980"),
            "syd05": ("s922", "e980"),
        },
        vpc_zones=("au-syd-1", "au-syd-2", "au-syd-3"),
    ),
    "tor": PowerVSRegion(
        description="Toronto, Canada",
        vpc_region="ca-tor",
        cos_region="ca-tor",
        zones={"tor01": ("s922", "e980")},
        vpc_zones=("ca-tor-1", "ca-tor-2", "ca-tor-3"),
    ),
    "us-east": PowerVSRegion(
        description="Washington DC, USA",
        vpc_region="us-east",
        cos_region="us-east",
        zones={"us-east": ("s922", "e980")},
        vpc_zones=("us-east-1", "us-east-2", "us-east-3"),
    ),
    "us-south": PowerVSRegion(
        description="Dallas, USA",
        vpc_region="us-south",
        cos_region="us-south",
        zones={"us-south": ("s922", "e980")},
        vpc_zones=("us-south-1", "us-south-2", "us-south-3"),
    ),
    "wdc": PowerVSRegion(
        description="Washington DC, USA",
        vpc_region="us-east",
        cos_region="us-east",
        zones={
            "wdc06": ("s922", "e980"),
            "wdc07": ("s922", "s1022", "e980", "e1080"),
        },
        vpc_zones=("us-east-1", "us-east-2", "us-east-3"),
    ),
}


def get_region(region: str) -> PowerVSRegion:
    try:
        return REGIONS[region]
    except KeyError:
        raise SetupError(f"Power VS region {region!r} is not known") from None


def vpc_region_for(region: str) -> str:
    """Return the VPC region that pairs with a Power VS region."""
    try:
        return REGIONS[region].vpc_region
    except KeyError:
        raise SetupError(
            f"VPC region corresponding to a Power VS region {region} not found"
        ) from None


def cos_region_for(region: str) -> str:
    return get_region(region).cos_region
