from ._base import BaseCommand  # noqa: F401
