from typing import Any, Dict, Union

from ..models.store_setting import StoreSetting
from ..settings import SETTINGS_DOMAINS, CheckoutSettings, StoreInfo
from .logging import log_event

TypedSettings = Union[CheckoutSettings, StoreInfo]


class SettingsService:
    """Typed access to the store settings rows."""

    def __init__(self, session_factory):
        self._session_factory = session_factory

    @staticmethod
    def _domain(key: str):
        try:
            return SETTINGS_DOMAINS[key]
        except KeyError:
            raise ValueError(f"Unknown settings domain: {key}") from None

    @classmethod
    def load(cls, session, key: str) -> TypedSettings:
        domain = cls._domain(key)
        row = session.get(StoreSetting, key)
        return domain.from_dict(row.value if row else None)

    def get(self, key: str) -> TypedSettings:
        with self._session_factory() as session:
            return self.load(session, key)

    def checkout(self) -> CheckoutSettings:
        return self.get(CheckoutSettings.KEY)

    def store_info(self) -> StoreInfo:
        return self.get(StoreInfo.KEY)

    def save(self, key: str, values: Dict[str, Any]) -> TypedSettings:
        """Validate and store a whole settings domain; missing fields take defaults."""
        settings = self._domain(key).from_dict(values)
        with self._session_factory() as session:
            row = session.get(StoreSetting, key)
            if row is None:
                session.add(StoreSetting(key=key, value=settings.to_dict()))
            else:
                row.value = settings.to_dict()
            session.flush()
        log_event("info", "settings.saved", key=key)
        return settings
