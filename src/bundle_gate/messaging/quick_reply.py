from __future__ import annotations

from typing import Any, Dict, Iterable, List

# Limites imposées par l'API de messagerie (LINE)
MAX_QUICK_REPLY_ITEMS = 13
MAX_LABEL_LENGTH = 20

QuickReplyItem = Dict[str, Any]


def create_quick_reply_items(labels: Iterable[str]) -> Dict[str, List[QuickReplyItem]]:
    """
    Construit le bloc quick-reply à partir d'une liste de libellés.

    - au plus MAX_QUICK_REPLY_ITEMS items (les suivants sont ignorés)
    - label tronqué à MAX_LABEL_LENGTH caractères
    - text conservé intégralement : c'est la valeur renvoyée au clic
    """
    items: List[QuickReplyItem] = []
    for label in labels:
        if len(items) >= MAX_QUICK_REPLY_ITEMS:
            break
        items.append(
            {
                "type": "action",
                "action": {
                    "type": "message",
                    "label": label[:MAX_LABEL_LENGTH],
                    "text": label,
                },
            }
        )
    return {"items": items}
