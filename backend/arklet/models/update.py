# arklet/models/update.py
from tortoise import fields, models


class AppUpdate(models.Model):
    """
    One row per applied application update.

    - key: Registered update key (unique), e.g. "0.0.1-admins"
    - applied_at: When the update finished successfully
    """
    key = fields.CharField(max_length=255, unique=True, index=True)
    applied_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "app_updates"
