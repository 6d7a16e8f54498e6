"""Provider client registry."""

from typing import Dict, Type

from crm_integrations.errors import InvalidProviderError
from crm_integrations.models import Provider
from crm_integrations.providers.apollo import ApolloClient
from crm_integrations.providers.base import ProviderClient
from crm_integrations.providers.foursquare import FoursquareClient
from crm_integrations.providers.google_maps import GoogleMapsClient
from crm_integrations.providers.pipedrive import PipedriveClient
from crm_integrations.providers.twenty_crm import TwentyCrmClient

PROVIDER_CLIENTS: Dict[Provider, Type[ProviderClient]] = {
    Provider.APOLLO: ApolloClient,
    Provider.GOOGLE_MAPS: GoogleMapsClient,
    Provider.FOURSQUARE: FoursquareClient,
    Provider.PIPEDRIVE: PipedriveClient,
    Provider.TWENTY_CRM: TwentyCrmClient,
}


def get_client_class(provider) -> Type[ProviderClient]:
    try:
        return PROVIDER_CLIENTS[Provider.parse(provider)]
    except KeyError:
        raise InvalidProviderError(f"Unknown provider: {provider}", str(provider)) from None


__all__ = ["PROVIDER_CLIENTS", "ProviderClient", "get_client_class"]
