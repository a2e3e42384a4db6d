import random
from typing import Any, Sequence


class Randomizer:
    """Утилиты для генерации случайных значений"""

    @staticmethod
    def get_tolerance_percentage(base: float, tolerance: float) -> float:
        """Случайная доля в диапазоне base ± tolerance"""
        return random.uniform(base - tolerance, base + tolerance)

    @staticmethod
    def get_random_delay(min_seconds: float = 5.0, max_seconds: float = 30.0) -> float:
        """Получение случайной задержки"""
        return random.uniform(min_seconds, max_seconds)

    @staticmethod
    def get_random_item(items: Sequence[Any]) -> Any:
        """Случайный элемент (с возвращением)"""
        return random.choice(items) if items else None
