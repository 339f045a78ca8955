"""
gouraan/i18n/ - 多语言文案

translations/<locale>.yaml 为文案目录，键使用点号分隔（如 booking.status.confirmed），
文案中的 {{param}} 在翻译时替换。缺失的键依次回退到英文、键本身。
"""
import logging
import re
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import yaml

logger = logging.getLogger(__name__)

_translations_dir = Path(__file__).parent / "translations"

SUPPORTED_LOCALES = ["en", "bn", "ar"]
FALLBACK_LOCALE = "en"
RTL_LOCALES = {"ar", "he", "fa", "ur"}

_PARAM_RE = re.compile(r"\{\{\s*(\w+)\s*\}\}")


class TranslationService:
    """翻译服务"""

    def __init__(self, translations_dir: Path = _translations_dir):
        self._dir = Path(translations_dir)
        self._catalogs: Dict[str, Dict[str, Any]] = {}
        self.load()

    def load(self) -> None:
        """加载全部语言目录"""
        self._catalogs.clear()
        for locale in SUPPORTED_LOCALES:
            path = self._dir / f"{locale}.yaml"
            if not path.exists():
                continue
            with open(path, 'r', encoding='utf-8') as f:
                self._catalogs[locale] = yaml.safe_load(f) or {}
        logger.info(f"Loaded translations for {len(self._catalogs)} locales")

    @staticmethod
    def _lookup(catalog: Dict[str, Any], key: str) -> Any:
        current: Any = catalog
        for part in key.split("."):
            if not isinstance(current, dict) or part not in current:
                return None
            current = current[part]
        return current

    def translate(self, key: str, locale: str = FALLBACK_LOCALE,
                  params: Optional[Dict[str, Any]] = None) -> str:
        """翻译，缺失时回退英文，仍缺失返回键"""
        value = self._lookup(self._catalogs.get(locale, {}), key)
        if value is None and locale != FALLBACK_LOCALE:
            value = self._lookup(self._catalogs.get(FALLBACK_LOCALE, {}), key)
        if value is None or isinstance(value, (dict, list)):
            return key

        text = str(value)
        if params:
            text = _PARAM_RE.sub(
                lambda m: str(params[m.group(1)]) if m.group(1) in params else m.group(0),
                text,
            )
        return text

    def get_supported_locales(self) -> List[str]:
        return list(SUPPORTED_LOCALES)

    def is_locale_supported(self, locale: str) -> bool:
        return locale in SUPPORTED_LOCALES

    def resolve_locale(self, locale: Optional[str]) -> str:
        """不支持的语言回退英文"""
        return locale if locale in SUPPORTED_LOCALES else FALLBACK_LOCALE

    def is_rtl(self, locale: str) -> bool:
        return locale in RTL_LOCALES

    def get_text_direction(self, locale: str) -> str:
        return "rtl" if self.is_rtl(locale) else "ltr"

    # ---------- 业务字段 ----------

    def translate_booking_status(self, status: str, locale: str = FALLBACK_LOCALE) -> str:
        return self.translate(f"booking.status.{str(status).lower()}", locale)

    def translate_booking_type(self, booking_type: str, locale: str = FALLBACK_LOCALE) -> str:
        return self.translate(f"booking.type.{str(booking_type).lower()}", locale)

    def translate_payment_status(self, status: str, locale: str = FALLBACK_LOCALE) -> str:
        return self.translate(f"payment.status.{str(status).lower()}", locale)

    def notification_text(self, name: str, locale: str,
                          params: Optional[Dict[str, Any]] = None) -> tuple[str, str]:
        """通知标题与正文"""
        return (
            self.translate(f"notifications.{name}.title", locale, params),
            self.translate(f"notifications.{name}.message", locale, params),
        )

    # ---------- 格式化 ----------

    def format_currency(self, amount: Union[Decimal, float, int], currency: str,
                        locale: str = FALLBACK_LOCALE) -> str:
        """金额格式化：阿拉伯语货币代码后置"""
        number = f"{Decimal(str(amount)):,.2f}"
        if locale == "ar":
            return f"{number} {currency}"
        return f"{currency} {number}"

    def format_date(self, value: Union[date, datetime], locale: str = FALLBACK_LOCALE) -> str:
        """日期格式化：en 为 "March 5, 2025"，其余为 "5 <月份> 2025" """
        months = self._lookup(self._catalogs.get(locale, {}), "date.months") \
            or self._lookup(self._catalogs.get(FALLBACK_LOCALE, {}), "date.months")
        month = months[value.month - 1] if months else str(value.month)
        if locale == FALLBACK_LOCALE:
            return f"{month} {value.day}, {value.year}"
        return f"{value.day} {month} {value.year}"

    def get_stats(self) -> Dict[str, int]:
        """每种语言的叶子键数量"""
        def count(node: Any) -> int:
            if isinstance(node, dict):
                return sum(count(v) for v in node.values())
            return 1
        return {locale: count(catalog) for locale, catalog in self._catalogs.items()}


# 全局翻译服务实例
translator = TranslationService()
