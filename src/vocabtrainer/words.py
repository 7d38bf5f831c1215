"""Static word universe."""
import json
import logging
from pathlib import Path
from typing import List, Optional

from vocabtrainer.models.word_models import WordIdentity

logger = logging.getLogger(__name__)

GRE_WORDS = [
    "aberrant", "abscond", "acumen", "admonish", "alacrity", "ameliorate", "anachronism",
    "anomalous", "antipathy", "apricot", "arcane", "assuage", "audacious", "austere",
    "belie", "bolster", "cacophony", "capricious", "castigate", "chicanery", "cogent",
    "conciliatory", "corroborate", "credulous", "dearth", "deleterious", "diatribe",
    "didactic", "dilettante", "disparate", "ebullient", "eclectic", "efficacy", "enervate",
    "ephemeral", "equivocate", "erudite", "esoteric", "exculpate", "fastidious", "fervid",
    "garrulous", "gregarious", "harangue", "iconoclast", "impetuous", "inchoate", "ingenuous",
    "intransigent", "laconic", "loquacious", "lucid", "magnanimous", "mendacious", "obdurate",
    "obsequious", "obviate", "paucity", "pedantic", "perfidious", "placate", "pragmatic",
    "precipitate", "prodigal", "propitiate", "quiescent", "recalcitrant", "reticent",
    "sagacious", "soporific", "sycophant", "taciturn", "tenuous", "torpor", "vacillate",
    "venerate", "veracity", "vociferous", "zealot",
]


def default_words() -> List[WordIdentity]:
    """Get the built-in word list."""
    return [WordIdentity(id=f"gre-{index + 1}", text=text) for index, text in enumerate(GRE_WORDS)]


def load_words(path: Optional[str] = None) -> List[WordIdentity]:
    """Load the word universe.

    Args:
        path: Optional JSON file holding a list of ``{"id": ..., "text": ...}``
            objects. The built-in list is used when not given.

    Raises:
        ValueError: If the file lists the same id twice or an entry is incomplete.
    """
    if not path:
        return default_words()

    raw_words = json.loads(Path(path).read_text(encoding="utf-8"))
    words = []
    seen_ids = set()
    for item in raw_words:
        if not item.get("id") or not item.get("text"):
            raise ValueError(f"Word entry without id or text in {path}: {item}")
        if item["id"] in seen_ids:
            raise ValueError(f"Duplicate word id in {path}: {item['id']}")
        seen_ids.add(item["id"])
        words.append(WordIdentity(id=str(item["id"]), text=item["text"]))
    logger.info(f"Loaded {len(words)} words from {path}")
    return words
