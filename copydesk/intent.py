"""Chat intent classification and requested item counts.

Keyword heuristics over the lowercased message. Verbs are matched at word
starts so that ``reescreva`` does not count as the creation verb
``escreva`` and ``alternativa`` does not count as ``alterar``.
"""

from __future__ import annotations

import re

from copydesk.models import Intent

MAX_REQUESTED_COUNT = 20

CREATION_VERBS = re.compile(
    r"\b(?:cri(?:ar|e|em)|ger(?:ar|e|em)|fazer|fa[çc]a|produz(?:ir|a)|"
    r"escrev(?:er|a)|elabor(?:ar|e)|redi(?:gir|ja))\b"
)
REPLACE_VERBS = re.compile(
    r"\b(?:otimiz|melhor(?:e|a|ar)\b|reescrev|refa[zç]|ajust|corri[jg]|edit|"
    r"modifi|alter(?!nativ)|substitu|troc|atualiz|reformul|encurt|simplifi)"
)
INSERT_VERBS = re.compile(
    r"\b(?:vari[ae]|vers(?:ão|ões|ao|oes)\b|alternativ|op[çc](?:ão|ões|ao|oes)\b|"
    r"adicion|acrescent|complement|expand|inclu[ai]|mais\b)"
)
CONVERSATIONAL_MARKERS = re.compile(
    r"\b(?:o que|quais?|como|porque|por que|por quê|quando|explique|explica|"
    r"me conte|me fale|diga|analise|analisa|avalie|avalia|compare|"
    r"você acha|vc acha|opini[ãa]o)\b"
)
ELEMENT_MENTION = re.compile(
    r"\b(?:blocos?|sess(?:ão|ões|ao|oes)|se[çc](?:ão|ões|ao|oes)|headlines?|subheadlines?|"
    r"t[íi]tulos?|ctas?|par[áa]grafos?|listas?|textos?)\s*(?:n[ºo°]?\s*)?\d+\b"
    r"|\b(?:o|a|os|as|esse|essa|este|esta|desse|dessa|deste|desta|do|da|no|na)\s+"
    r"(?:blocos?|sess(?:ão|ões|ao|oes)|se[çc](?:ão|ões|ao|oes)|headlines?|subheadlines?|"
    r"t[íi]tulos?|ctas?|par[áa]grafos?|listas?|textos?)\b"
)

WRITTEN_NUMBERS: dict[str, int] = {
    "um": 1,
    "uma": 1,
    "dois": 2,
    "duas": 2,
    "três": 3,
    "tres": 3,
    "quatro": 4,
    "cinco": 5,
    "seis": 6,
    "sete": 7,
    "oito": 8,
    "nove": 9,
    "dez": 10,
    "onze": 11,
    "doze": 12,
    "treze": 13,
    "quatorze": 14,
    "catorze": 14,
    "quinze": 15,
    "dezesseis": 16,
    "dezessete": 17,
    "dezoito": 18,
    "dezenove": 19,
    "vinte": 20,
}

_COUNTABLE_NOUNS = (
    r"mensagens?|headlines?|subheadlines?|varia[çc](?:ão|ões|ao|oes)|op[çc](?:ão|ões|ao|oes)|"
    r"vers(?:ão|ões|ao|oes)|blocos?|t[íi]tulos?|an[úu]ncios?|e-?mails?|posts?|ctas?|"
    r"textos?|ideias?|frases?|ganchos?|hooks?|copys?|copies|itens|items?|roteiros?|"
    r"legendas?|sugest(?:ão|ões|ao|oes)|exemplos?|chamadas?|bullets?|stories"
)
_COUNT_PATTERN = re.compile(
    r"\b(?P<count>\d{1,2}|" + "|".join(WRITTEN_NUMBERS) + r")\s+"
    r"(?:(?:novas?|novos?|outras?|outros?|diferentes|poss[íi]veis)\s+)?"
    r"(?:" + _COUNTABLE_NOUNS + r")\b"
)


def detect_requested_count(message: str | None) -> int | None:
    """Extract an explicit item count such as "7 mensagens" or "três headlines"."""
    if not message:
        return None
    match = _COUNT_PATTERN.search(message.lower())
    if not match:
        return None
    token = match.group("count")
    count = int(token) if token.isdigit() else WRITTEN_NUMBERS[token]
    if 1 <= count <= MAX_REQUESTED_COUNT:
        return count
    return None


def _is_question(message: str) -> bool:
    return message.rstrip().endswith("?")


def detect_user_intent(message: str | None, has_selection: bool) -> Intent:
    lowered = (message or "").lower().strip()
    has_creation = bool(CREATION_VERBS.search(lowered))
    has_replace = bool(REPLACE_VERBS.search(lowered))
    has_insert = bool(INSERT_VERBS.search(lowered))

    if not has_selection:
        mentions_element = bool(ELEMENT_MENTION.search(lowered))
        if mentions_element and has_replace:
            return "replace"
        if has_creation:
            return "insert"
        if has_insert and (mentions_element or detect_requested_count(lowered) is not None):
            return "insert"
        return "conversational"

    is_conversational = bool(CONVERSATIONAL_MARKERS.search(lowered)) or _is_question(lowered)
    if is_conversational and not has_creation:
        return "conversational"
    if has_replace:
        return "replace"
    if has_insert:
        return "insert"
    if has_creation:
        return "insert"
    return "default"
