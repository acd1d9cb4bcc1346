"""
RESOLVER MODULE - Map the user's words to what is actually stored

Purpose:
    Expense categories come from the Câmara API with official, verbose names
    ("LOCAÇÃO OU FRETAMENTO DE VEÍCULOS AUTOMOTORES"). Users say
    "aluguel de carro". This module turns a free-text term into keyword
    fragments that are OR-matched as case-insensitive substrings against
    ``Expense.expense_type``.

Resolution order:
    exact synonym -> substring overlap -> shared words -> heuristics -> literal

Party acronyms get the same treatment in a simpler form: parties that merged
or were renamed are mapped to their current acronym.

Everything here is pure: no database, no I/O.
"""

import unicodedata
from typing import Dict, List, Tuple


def strip_accents(text: str) -> str:
    """
    Remove diacritics keeping the base letters.

    Examples:
        "LOCAÇÃO" → "LOCACAO"
        "Alimentação" → "Alimentacao"
    """
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_term(term: str) -> str:
    """Trim, collapse whitespace, uppercase and drop accents."""
    return strip_accents(" ".join(term.split()).upper())


# ============================================================================
# EXPENSE TYPE SYNONYMS
# ============================================================================

FUEL = ("COMBUST", "LUBRIFICANTE")
VEHICLE_RENTAL = ("LOCACAO", "FRETAMENTO", "VEICULO", "AUTOMOTOR")
FOOD = ("ALIMENTA", "REFEICAO", "REFEIÇÃO")
PHONE = ("TELEFONE", "TELEFON", "CELULAR")
LODGING = ("HOTEL", "HOSPEDA", "HOSPEDAGEM")
AIR_TRAVEL = ("PASSAGEM", "AEREA", "AEREO", "AVIAO")
PUBLICITY = ("DIVULGACAO", "DIVULGAÇÃO")
POSTAL = ("POSTAIS", "CORREIO")
OFFICE = ("ESCRITORIO", "ESCRITÓRIO", "MANUTENCAO", "MANUTENÇÃO")
SECURITY = ("SEGURANCA", "SEGURANÇA")
CONSULTING = ("CONSULTORIA", "PESQUISA", "TRABALHOS TECNICOS", "TRABALHOS TÉCNICOS")
TAXI = ("TAXI", "TÁXI", "PEDAGIO", "PEDÁGIO", "ESTACIONAMENTO")
COURSES = ("CURSO", "PALESTRA", "SEMINARIO", "SEMINÁRIO")

# Keys are already normalized (uppercase, no accents)
EXPENSE_SYNONYMS: Dict[str, Tuple[str, ...]] = {
    "COMBUSTIVEL": FUEL,
    "COMBUSTIVEIS": FUEL,
    "ALUGUEL DE CARRO": VEHICLE_RENTAL,
    "ALUGUEL DE CARROS": VEHICLE_RENTAL,
    "LOCACAO DE CARRO": VEHICLE_RENTAL,
    "LOCACAO DE CARROS": VEHICLE_RENTAL,
    "LOCACAO DE VEICULOS": VEHICLE_RENTAL,
    "FRETAMENTO": VEHICLE_RENTAL,
    "ALIMENTACAO": FOOD,
    "TELEFONIA": PHONE,
    "TELEFONE": PHONE,
    "HOSPEDAGEM": LODGING,
    "HOTEL": LODGING,
    "PASSAGEM AEREA": AIR_TRAVEL,
    "PASSAGENS AEREAS": AIR_TRAVEL,
    "PASSAGENS AEREA": AIR_TRAVEL,
    "PASSAGEM": AIR_TRAVEL,
    "PASSAGENS": AIR_TRAVEL,
    "DIVULGACAO": PUBLICITY,
    "DIVULGACAO PARLAMENTAR": PUBLICITY,
    "DIVULGACAO DA ATIVIDADE PARLAMENTAR": PUBLICITY,
    "CORREIOS": POSTAL,
    "SERVICOS POSTAIS": POSTAL,
    "ESCRITORIO": OFFICE,
    "SEGURANCA": SECURITY,
    "CONSULTORIA": CONSULTING,
    "TAXI": TAXI,
    "PEDAGIO": TAXI,
    "ESTACIONAMENTO": TAXI,
    "CURSOS": COURSES,
}

# Tried in order, first match wins
HEURISTIC_RULES: List[Tuple[Tuple[str, ...], Tuple[str, ...]]] = [
    (("CARRO", "AUTOMOVEL", "VEICULO"), VEHICLE_RENTAL),
    (("COMBUST", "GASOLINA", "ETANOL", "DIESEL"), FUEL),
    (("TELEFONE", "CELULAR", "TELEFONIA"), PHONE),
    (("HOTEL", "HOSPEDA", "HOSPEDAGEM"), LODGING),
    (("ALIMENTA", "COMIDA", "REFEICAO", "RESTAURANTE"), FOOD),
    (("PASSAGEM", "AEREA", "AVIAO", "VOO"), AIR_TRAVEL),
    (("DIVULGA", "PUBLICIDADE", "PROPAGANDA"), PUBLICITY),
    (("CORREIO", "POSTA"), POSTAL),
    (("SEGURANCA", "VIGILANCIA"), SECURITY),
]

# Connectors never count as a shared word ("aluguel DE carro" vs "material DE escritório")
STOP_WORDS = frozenset({"DE", "DA", "DO", "DAS", "DOS", "E", "OU", "EM", "COM", "PARA", "A", "O"})


def _dedupe(keywords) -> Tuple[str, ...]:
    seen = []
    for keyword in keywords:
        if keyword and keyword not in seen:
            seen.append(keyword)
    return tuple(seen)


def _content_words(text: str) -> set:
    return {word for word in text.split() if word not in STOP_WORDS}


def resolve_expense_type(term: str) -> Tuple[str, ...]:
    """
    Expand a free-text expense category into keyword fragments.

    Never fails: when nothing matches, the term itself is returned so the
    search degrades to a literal substring match.

    Args:
        term: Category as the user wrote it

    Returns:
        Non-empty tuple of fragments, in a stable order

    Examples:
        "aluguel de carro" → ("LOCACAO", "FRETAMENTO", "VEICULO", "AUTOMOTOR")
        "gasolina" → ("COMBUST", "LUBRIFICANTE")
        "Café" → ("CAFÉ", "CAFE")
    """
    upper = " ".join(term.split()).upper()
    normalized = strip_accents(upper)

    # 1. Exact synonym
    if normalized in EXPENSE_SYNONYMS:
        return EXPENSE_SYNONYMS[normalized]

    if normalized:
        # 2. Substring overlap, either direction
        for key, keywords in EXPENSE_SYNONYMS.items():
            if key in normalized or normalized in key:
                return keywords

        # 3. Shared content words
        user_words = _content_words(normalized)
        for key, keywords in EXPENSE_SYNONYMS.items():
            if user_words & _content_words(key):
                return keywords

        # 4. Heuristic rules
        for patterns, keywords in HEURISTIC_RULES:
            if any(pattern in normalized for pattern in patterns):
                return keywords

    # 5. Literal fallback, with and without accents
    literal = _dedupe([upper, normalized])
    return literal or ("",)


# ============================================================================
# PARTIES AND STATES
# ============================================================================

# Renamed or merged parties → acronym used by the Câmara today
PARTY_SUCCESSORS: Dict[str, str] = {
    "PMDB": "MDB",
    "PPS": "CIDADANIA",
    "PRB": "REPUBLICANOS",
    "PR": "PL",
    "PTN": "PODE",
    "PHS": "PODE",
    "PSC": "PODE",
    "PODEMOS": "PODE",
    "PT DO B": "AVANTE",
    "PTDOB": "AVANTE",
    "PEN": "PRD",
    "PSDC": "DC",
    "SD": "SOLIDARIEDADE",
    "PROS": "SOLIDARIEDADE",
    "PFL": "UNIÃO",
    "DEM": "UNIÃO",
    "PSL": "UNIÃO",
    "UNIAO": "UNIÃO",
    "UNIAO BRASIL": "UNIÃO",
    "PTB": "PRD",
    "PATRIOTA": "PRD",
    "PC DO B": "PCdoB",
    "PCDOB": "PCdoB",
}


def resolve_party(party: str) -> str:
    """
    Map a party acronym to its current form.

    Unknown acronyms pass through uppercased.

    Examples:
        "pmdb" → "MDB"
        "dem" → "UNIÃO"
        "PT" → "PT"
    """
    upper = " ".join(party.split()).upper()
    normalized = strip_accents(upper)
    return PARTY_SUCCESSORS.get(normalized, upper)


def normalize_state(state: str) -> str:
    """UF codes are stored as two uppercase letters."""
    return state.strip().upper()
