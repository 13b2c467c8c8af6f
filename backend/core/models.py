# core/models.py

from django.db import models

from core.write_barrier import writes_permitted


class CommandOwnedModel(models.Model):
    """
    Base for write models that only commands may change.

    Saves and deletes outside command_writes_allowed() raise, unless
    settings.TESTING is set.
    """

    WRITE_CONTEXTS = {"command", "bootstrap", "admin_emergency"}

    class Meta:
        abstract = True

    def _check_write_context(self, action: str) -> None:
        if not writes_permitted(self.WRITE_CONTEXTS):
            raise RuntimeError(
                f"{self.__class__.__name__} is a command-owned write model. "
                f"Direct {action} are only allowed within command_writes_allowed()."
            )

    def save(self, *args, **kwargs):
        self._check_write_context("saves")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        self._check_write_context("deletes")
        return super().delete(*args, **kwargs)
