from django.db.models.signals import pre_delete
from django.dispatch import receiver

from bounties.services.protection import gatekeeper, table_for_model


@receiver(pre_delete)
def block_protected_deletion(sender, instance, **kwargs):
    """
    Refuse ORM deletes of protected rows, whether issued on an instance or a queryset.

    The attempt is only logged here: the surrounding delete transaction is
    rolled back, so an audit row written now would not survive.
    """
    table = table_for_model(sender)
    if table is None:
        return
    gatekeeper.block_deletion("delete", table, instance.pk, record=False)
