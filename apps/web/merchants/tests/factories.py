"""
Factory classes for merchant models.
"""

import factory

from apps.web.merchants.models import MerchantCredential, POSProvider


class MerchantCredentialFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = MerchantCredential
        django_get_or_create = ("merchant_id",)

    merchant_id = factory.Sequence(lambda n: f"merchant-{n}")
    pos_provider = POSProvider.MOCK
    access_token = factory.Sequence(lambda n: f"EAAA-token-{n}")
    location_id = ""
