from django.db.models.signals import post_delete
from django.dispatch import receiver

from .models import ListingImage, Profile


@receiver(post_delete, sender=ListingImage)
def delete_listing_image_file(sender, instance, **kwargs):
    """
    Remove the stored file once its row is gone
    """
    if instance.image:
        instance.image.delete(save=False)


@receiver(post_delete, sender=Profile)
def delete_avatar_file(sender, instance, **kwargs):
    if instance.avatar:
        instance.avatar.delete(save=False)
