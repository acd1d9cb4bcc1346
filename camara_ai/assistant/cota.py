"""
Static reference knowledge about the CEAP (Cota para o Exercício da Atividade
Parlamentar). Answers rules questions without touching the database.
"""

from typing import Any, Dict, List, Optional

from camara_ai.assistant.resolver import normalize_state, normalize_term

# Monthly ceiling per UF in BRL (Ato da Mesa nº 43/2009, values updated in 2023).
# Varies by state because it is tied to the cost of flights to Brasília.
MONTHLY_ALLOWANCE: Dict[str, float] = {
    "AC": 50426.26,
    "AL": 46737.90,
    "AM": 49363.92,
    "AP": 49168.58,
    "BA": 44804.65,
    "CE": 48245.57,
    "DF": 36582.46,
    "ES": 42837.33,
    "GO": 41300.86,
    "MA": 47945.49,
    "MG": 41886.51,
    "MS": 46336.64,
    "MT": 45221.83,
    "PA": 48021.25,
    "PB": 47826.36,
    "PE": 47470.60,
    "PI": 46765.57,
    "PR": 44665.66,
    "RJ": 41553.77,
    "RN": 48525.79,
    "RO": 49466.29,
    "RR": 51406.33,
    "RS": 46669.70,
    "SC": 45671.58,
    "SE": 45933.06,
    "SP": 42032.56,
    "TO": 45297.41,
}

GENERAL_RULES: List[str] = [
    "A CEAP é uma cota mensal única destinada a custear gastos exclusivamente vinculados ao exercício da atividade parlamentar.",
    "O valor mensal varia por estado (UF) de eleição do deputado, pois considera o custo das passagens aéreas até Brasília.",
    "O saldo não utilizado em um mês acumula ao longo do exercício financeiro, mas não passa para o ano seguinte.",
    "O reembolso exige documento fiscal válido em nome do deputado, apresentado em até 90 dias após o fornecimento do produto ou serviço.",
    "Valores glosados (valorGlosa) são descontados pela Câmara; o valor efetivamente reembolsado é o valor líquido.",
]

ALLOWED_CATEGORIES: List[str] = [
    "Passagens aéreas, aquáticas e terrestres",
    "Telefonia e serviços postais",
    "Manutenção de escritório de apoio à atividade parlamentar (aluguel, condomínio, energia, água, material de expediente)",
    "Assinatura de publicações e serviços de TV e internet",
    "Alimentação do parlamentar",
    "Hospedagem (exceto no Distrito Federal para deputados com imóvel funcional ou auxílio-moradia)",
    "Locação ou fretamento de veículos automotores, aeronaves e embarcações",
    "Combustíveis e lubrificantes",
    "Serviços de segurança prestados por empresa especializada",
    "Contratação de consultorias, pesquisas e trabalhos técnicos",
    "Divulgação da atividade parlamentar (exceto nos 120 dias anteriores às eleições)",
    "Participação em cursos, palestras, seminários e eventos",
    "Serviço de táxi, pedágio e estacionamento",
]

PROHIBITED: List[str] = [
    "Despesas de caráter eleitoral ou de campanha.",
    "Divulgação da atividade parlamentar nos 120 dias que antecedem eleições.",
    "Pagamento a empresas cujo sócio seja o próprio deputado, cônjuge ou parente até o terceiro grau.",
    "Aquisição de bens permanentes (móveis, equipamentos, veículos).",
    "Despesas com bebidas alcoólicas, ou alimentação de terceiros.",
    "Contratação de pessoal, que é coberta pela verba de gabinete e não pela CEAP.",
]

TRANSPARENCY: List[str] = [
    "Todas as despesas reembolsadas são publicadas no portal de dados abertos da Câmara dos Deputados.",
    "Cada lançamento traz fornecedor (CNPJ/CPF), tipo de despesa, data, valor do documento, glosa e valor líquido.",
]

# Topic keyword fragments (normalized) → sections they select
TOPIC_KEYWORDS: Dict[str, List[str]] = {
    "rules": ["REGRA", "FUNCIONA", "O QUE E", "REEMBOLSO", "PRAZO", "ACUMUL", "SALDO"],
    "allowance": ["VALOR", "LIMITE", "TETO", "QUANTO", "MENSAL", "ESTADO", "UF"],
    "categories": ["CATEGORIA", "TIPO", "PERMITID", "PODE GASTAR", "COBRE", "INCLUI"],
    "prohibited": ["PROIBID", "VEDAD", "NAO PODE", "IRREGULAR", "PROIBE"],
    "transparency": ["TRANSPAREN", "PUBLIC", "DADOS ABERTOS", "CONSULTAR"],
}


def _allowance_section(state: Optional[str]) -> Dict[str, Any]:
    if state:
        uf = normalize_state(state)
        if uf in MONTHLY_ALLOWANCE:
            return {uf: MONTHLY_ALLOWANCE[uf]}
        return {"unknown_state": uf, "available_states": sorted(MONTHLY_ALLOWANCE)}
    return dict(MONTHLY_ALLOWANCE)


def select_sections(topic: Optional[str]) -> List[str]:
    """Sections whose keywords appear in the topic; every section when none does."""
    if topic:
        normalized = normalize_term(topic)
        matched = [
            section
            for section, keywords in TOPIC_KEYWORDS.items()
            if any(keyword in normalized for keyword in keywords)
        ]
        if matched:
            return matched
    return list(TOPIC_KEYWORDS)


def get_cota_info(topic: Optional[str] = None, state: Optional[str] = None) -> Dict[str, Any]:
    sections = select_sections(topic)
    # Asking about one state's cota implies the allowance table
    if state and "allowance" not in sections:
        sections.append("allowance")

    document: Dict[str, Any] = {"source": "Ato da Mesa nº 43/2009 e atualizações"}
    if "rules" in sections:
        document["general_rules"] = GENERAL_RULES
    if "allowance" in sections:
        document["monthly_allowance_brl"] = _allowance_section(state)
    if "categories" in sections:
        document["allowed_categories"] = ALLOWED_CATEGORIES
    if "prohibited" in sections:
        document["prohibited"] = PROHIBITED
    if "transparency" in sections:
        document["transparency"] = TRANSPARENCY
    return document
