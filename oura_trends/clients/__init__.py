from oura_trends.clients.body_composition import (
    BodyCompositionSource,
    EmptyBodyComposition,
    StaticBodyComposition,
)
from oura_trends.clients.oura_client import OuraAPIError, OuraClient, OuraPaginationError
from oura_trends.clients.withings_client import WithingsAPIError, WithingsBodyComposition

__all__ = [
    "BodyCompositionSource",
    "EmptyBodyComposition",
    "StaticBodyComposition",
    "OuraAPIError",
    "OuraClient",
    "OuraPaginationError",
    "WithingsAPIError",
    "WithingsBodyComposition",
]
