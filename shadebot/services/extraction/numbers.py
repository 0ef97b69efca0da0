import re

NUMBER_WORDS = {
    "cero": "0",
    "uno": "1",
    "una": "1",
    "dos": "2",
    "tres": "3",
    "cuatro": "4",
    "cinco": "5",
    "seis": "6",
    "siete": "7",
    "ocho": "8",
    "nueve": "9",
    "diez": "10",
    "once": "11",
    "doce": "12",
    "trece": "13",
    "catorce": "14",
    "quince": "15",
    "dieciséis": "16",
    "dieciseis": "16",
    "diecisiete": "17",
    "dieciocho": "18",
    "diecinueve": "19",
    "veinte": "20",
    "veintiuno": "21",
    "veintidós": "22",
    "veintidos": "22",
    "veintitrés": "23",
    "veintitres": "23",
    "veinticuatro": "24",
    "veinticinco": "25",
    "treinta": "30",
    "cuarenta": "40",
    "cincuenta": "50",
    "sesenta": "60",
    "setenta": "70",
    "ochenta": "80",
    "noventa": "90",
}

_SMALL = r"(uno|una|dos|tres|cuatro|cinco|seis|siete|ocho|nueve|diez|once|doce)"
_TENS = r"(veinte|treinta|cuarenta|cincuenta|sesenta|setenta|ochenta|noventa)"
_DIGIT = r"(uno|una|dos|tres|cuatro|cinco|seis|siete|ocho|nueve)"

_HALF_WITH_UNIT = re.compile(rf"\b{_SMALL}\s+metros?\s+y\s+medio\b")
_HALF = re.compile(rf"\b{_SMALL}\s+y\s+medio\b")
_SPOKEN_DECIMAL = re.compile(
    r"\b(uno|dos|tres|cuatro|cinco|seis|siete|ocho|nueve|diez)\s+"
    r"(diez|veinte|treinta|cuarenta|cincuenta|sesenta|setenta|ochenta|noventa|cero|uno|dos|tres"
    r"|cuatro|cinco|seis|siete|ocho|nueve)\b"
)
_COMPOUND = re.compile(rf"\b{_TENS}\s+y\s+{_DIGIT}\b")
_SIMPLE = re.compile(
    r"\b(" + "|".join(sorted(NUMBER_WORDS, key=len, reverse=True)) + r")\b"
)


def convert_number_words(text: str) -> str:
    """Replace Spanish number words with digits.

    "seis por cuatro" -> "6 por 4", "tres y medio" -> "3.5", "uno treinta" -> "1.30".
    """
    if not text:
        return ""

    converted = text.lower()
    converted = _HALF_WITH_UNIT.sub(lambda m: f"{NUMBER_WORDS[m.group(1)]}.5", converted)
    converted = _HALF.sub(lambda m: f"{NUMBER_WORDS[m.group(1)]}.5", converted)
    converted = _SPOKEN_DECIMAL.sub(
        lambda m: f"{NUMBER_WORDS[m.group(1)]}.{NUMBER_WORDS[m.group(2)]}", converted
    )
    converted = _COMPOUND.sub(
        lambda m: str(int(NUMBER_WORDS[m.group(1)]) + int(NUMBER_WORDS[m.group(2)])), converted
    )
    return _SIMPLE.sub(lambda m: NUMBER_WORDS[m.group(1)], converted)
