"""Region selection for test deployments."""

import logging
import os
import random
from typing import List, Optional


logger = logging.getLogger(__name__)

REGION_OVERRIDE_ENV_VAR = "TEST_REGION"

# Long-lived regions where every service the harness touches is available.
STABLE_REGIONS = [
    "us-east-1",
    "us-east-2",
    "us-west-1",
    "us-west-2",
    "eu-north-1",
    "eu-west-1",
    "eu-west-2",
    "eu-west-3",
    "eu-central-1",
    "ap-southeast-1",
    "ap-southeast-2",
    "ap-northeast-1",
    "ap-northeast-2",
    "ap-south-1",
    "ca-central-1",
    "sa-east-1",
]


class RegionSelectionError(Exception):
    """Raised when no region satisfies the approved/forbidden constraints."""
    pass


def get_random_stable_region(
    approved_regions: Optional[List[str]] = None,
    forbidden_regions: Optional[List[str]] = None,
) -> str:
    """Pick a stable region at random.

    The TEST_REGION environment variable, when set, wins over everything
    else so a run can be pinned to one region.

    Args:
        approved_regions: Restrict the choice to these regions
        forbidden_regions: Never choose these regions

    Returns:
        AWS region name

    Raises:
        RegionSelectionError: When the constraints leave no region
    """
    override = os.environ.get(REGION_OVERRIDE_ENV_VAR)
    if override:
        logger.info(f"Using region {override} from {REGION_OVERRIDE_ENV_VAR}")
        return override

    candidates = list(STABLE_REGIONS)
    if approved_regions:
        candidates = [r for r in candidates if r in approved_regions]
    if forbidden_regions:
        candidates = [r for r in candidates if r not in forbidden_regions]

    if not candidates:
        raise RegionSelectionError(
            "No stable region left after applying approved and forbidden regions"
        )

    region = random.choice(candidates)
    logger.info(f"Selected random stable region {region}")
    return region
