from config.constants import DEFAULT_SWAP_COUNT, MAX_SWAP_COUNT, MIN_SWAP_COUNT


def secure_input(prompt: str) -> str:
    """Ввод с обрезкой пробелов; EOF считаем пустым ответом"""
    try:
        return input(prompt).strip()
    except EOFError:
        return ""


def parse_swap_count(raw) -> int:
    """
    Количество forward свапов на кошелек.
    Все, что не целое число в диапазоне [1, 50], превращается в значение по умолчанию.
    """
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return DEFAULT_SWAP_COUNT

    if MIN_SWAP_COUNT <= value <= MAX_SWAP_COUNT:
        return value
    return DEFAULT_SWAP_COUNT


def prompt_swap_count() -> int:
    """Интерактивный запрос количества свапов"""
    answer = secure_input(f"Forward swaps? ({MIN_SWAP_COUNT}-{MAX_SWAP_COUNT}, def {DEFAULT_SWAP_COUNT}): ")
    return parse_swap_count(answer)
