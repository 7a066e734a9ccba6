import re
from typing import Any, Dict, Iterable, List, Mapping, Optional

from schoolcrm.utils.text import fold_name

# Canonical field -> external keys accepted as synonyms, checked in order.
FIELD_ALIASES: Dict[str, List[str]] = {
    "full_name": ["client_name", "nome", "name", "full_name", "nome_completo"],
    "phone": ["telefone", "celular", "whatsapp", "phone", "fone"],
    "email": ["e-mail", "email"],
    "age": ["idade", "student_age", "age"],
    "course": ["curso", "course_name", "course"],
    "class_name": ["turma", "class", "class_name"],
    "enrollment_type": ["tipo_matricula", "tipo", "enrollment_type", "type"],
    "referral_code": ["codigo_agente", "agent_code", "referral_code", "codigo"],
    "influencer": ["influenciador", "influencer_name", "influencer"],
    "notes": ["observacoes", "observações", "notes", "obs"],
}

ENROLLMENT_TYPES = (
    "modelo_agenciado_maxfama",
    "modelo_agenciado_popschool",
    "indicacao_influencia",
    "indicacao_aluno",
)

ENROLLMENT_TYPE_MAP: Dict[str, str] = {
    "maxfama": "modelo_agenciado_maxfama",
    "max fama": "modelo_agenciado_maxfama",
    "pop school": "modelo_agenciado_popschool",
    "popschool": "modelo_agenciado_popschool",
    "indicação influência": "indicacao_influencia",
    "indicacao influencia": "indicacao_influencia",
    "influencia": "indicacao_influencia",
    "indicação aluno": "indicacao_aluno",
    "indicacao aluno": "indicacao_aluno",
    "aluno": "indicacao_aluno",
}
ENROLLMENT_TYPE_MAP.update({code: code for code in ENROLLMENT_TYPES})

# (label, keys) pairs folded into the lead notes, in output order.
LEAD_NOTE_PARTS = [
    ("Telemarketing", ("Telemarketing", "telemarketing")),
    ("Scouter", ("scouter", "Scouter")),
    ("Local", ("local", "Local")),
    ("Data Agendamento", ("event_date", "Data")),
    ("Hora", ("Hora", "hora")),
]

LEADING_INT_RE = re.compile(r"\s*([+-]?\d+)")


def _present(value: Any) -> bool:
    if value is None or value is False:
        return False
    return value != ""


def first_present(data: Mapping[str, Any], keys: Iterable[str]) -> Optional[Any]:
    """Return the first non-empty value among `keys`."""
    for key in keys:
        value = data.get(key)
        if _present(value):
            return value
    return None


def first_text(data: Mapping[str, Any], keys: Iterable[str]) -> Optional[str]:
    value = first_present(data, keys)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def lowercase_params(items: Iterable) -> Dict[str, str]:
    """Lower-case keys and keep only scalar string/number values as strings."""
    params: Dict[str, str] = {}
    for key, value in items:
        if isinstance(value, bool):
            continue
        if isinstance(value, (str, int, float)):
            params[str(key).lower()] = str(value)
    return params


def get_value(params: Mapping[str, str], field: str) -> Optional[str]:
    """Resolve a canonical field from lower-cased params through FIELD_ALIASES."""
    if params.get(field):
        return params[field]
    for alias in FIELD_ALIASES.get(field, []):
        if params.get(alias):
            return params[alias]
        lower_alias = alias.lower()
        if params.get(lower_alias):
            return params[lower_alias]
    return None


def normalize_enrollment_type(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    return ENROLLMENT_TYPE_MAP.get(fold_name(value))


def parse_age(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    match = LEADING_INT_RE.match(value)
    if not match:
        return None
    return int(match.group(1))


def build_lead_notes(data: Mapping[str, Any], include_free_text: bool = False) -> str:
    parts: List[str] = []
    for label, keys in LEAD_NOTE_PARTS:
        value = first_present(data, keys)
        if value is not None:
            parts.append(f"{label}: {value}")
    if include_free_text and _present(data.get("notes")):
        parts.append(str(data["notes"]))
    return " | ".join(parts)
