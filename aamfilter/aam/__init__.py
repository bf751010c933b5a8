from .base import AAMSnapshot, AppearanceModel
