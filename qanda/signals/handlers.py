from typing import Any

from django.conf import settings
from django.db.models.signals import post_save
from django.dispatch import receiver

from qanda.logging import QandaLogger
from qanda.models import UserProfile

structured_logger = QandaLogger.get_logger(__name__)


@receiver(post_save, sender=settings.AUTH_USER_MODEL)
def create_user_profile(
    sender: Any,
    instance: Any,
    created: bool = False,
    **kwargs: Any,
) -> None:
    """
    Ensure a UserProfile exists for a saved user instance.

    New accounts get the plain user role; moderators and super admins are
    promoted by editing the profile afterwards.

    Args:
        sender (Any): The user model class.
        instance (Any): The saved user instance.
        created (bool): Whether the user was just created.
        **kwargs: Unused keyword signal arguments.

    Returns:
        None
    """
    if kwargs.get("raw"):
        return

    if not hasattr(instance, "profile"):
        UserProfile.objects.create(user=instance)
        structured_logger.debug(
            "Created profile for user.",
            event_code="user_profile_created",
            user=instance,
            new_user=created,
        )
