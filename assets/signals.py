import logging

from django.db.models.signals import post_save
from django.dispatch import receiver

from core.utils import build_asset_qr_url, generate_qr_code_with_label
from .models import Asset

logger = logging.getLogger(__name__)


@receiver(post_save, sender=Asset)
def generate_asset_qr_code(sender, instance, created, **kwargs):
    """
    Generate the QR label for a new asset.

    The code points at the asset's QR lookup page and carries the item code
    as its label. History for the creation is written by the asset service.
    """
    if not created or instance.qr_code_image:
        return

    qr_file = generate_qr_code_with_label(
        data=build_asset_qr_url(instance.qr_code),
        label_text=instance.asset_tag,
        filename_hint=instance.asset_tag,
    )
    instance.qr_code_image.save(qr_file.name, qr_file, save=True)
    logger.debug("QR label generated for %s", instance.asset_tag)
