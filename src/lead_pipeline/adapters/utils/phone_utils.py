from __future__ import annotations

import re

import phonenumbers
from phonenumbers import NumberParseException


def _only_digits(s: str) -> str:
    return re.sub(r"\D+", "", s or "")


def normalize_phone(raw: str | None, default_region: str = "ES", national_digits: int = 9) -> str | None:
    """
    Normaliza para E.164 (`+34612345678`) no país da clínica.

    - remove tudo que não é dígito e o prefixo internacional '00'
    - remove o código do país quando presente
    - exige exatamente `national_digits` dígitos nacionais
    Retorna None se o número não for aceitável.
    """
    digits = _only_digits(raw or "")
    if not digits:
        return None

    country_code = str(phonenumbers.country_code_for_region(default_region))
    if digits.startswith("00"):
        digits = digits[2:]
    if digits.startswith(country_code) and len(digits) == len(country_code) + national_digits:
        digits = digits[len(country_code):]
    if len(digits) != national_digits:
        return None

    try:
        num = phonenumbers.parse(f"+{country_code}{digits}", None)
    except NumberParseException:
        return None
    if not phonenumbers.is_possible_number(num):
        return None
    return phonenumbers.format_number(num, phonenumbers.PhoneNumberFormat.E164)
