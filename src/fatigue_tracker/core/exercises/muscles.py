"""
Muscle groups and muscle-name normalization.

Catalog data and imported logs use free-text muscle names ("Latissimus
Dorsi", "Deltoids (Anterior)", "Obliques", ...).  ``normalize_muscle`` maps
them onto the 13 tracked groups.  What happens to names that do not map is
a policy decision:

* ``strict``  – raise UnknownMuscleError
* ``lenient`` – return None; the caller drops the engagement and warns
"""

import re
from enum import Enum
from typing import Final

from .. import config
from ..errors import UnknownMuscleError


class Muscle(str, Enum):
    """The tracked muscle groups."""

    PECTORALIS = "Pectoralis"
    TRICEPS = "Triceps"
    DELTOIDS = "Deltoids"
    LATS = "Lats"
    BICEPS = "Biceps"
    RHOMBOIDS = "Rhomboids"
    TRAPEZIUS = "Trapezius"
    FOREARMS = "Forearms"
    QUADRICEPS = "Quadriceps"
    GLUTES = "Glutes"
    HAMSTRINGS = "Hamstrings"
    CALVES = "Calves"
    CORE = "Core"

    def __str__(self) -> str:
        return self.value


ALL_MUSCLES: Final[tuple[Muscle, ...]] = tuple(Muscle)

# Keys are compared after _key() folding (lowercase, alphanumerics only).
MUSCLE_ALIASES: Final[dict[str, Muscle]] = {
    # chest
    "chest": Muscle.PECTORALIS,
    "pecs": Muscle.PECTORALIS,
    "pectorals": Muscle.PECTORALIS,
    "pectoralismajor": Muscle.PECTORALIS,
    "pectoralismajorclavicular": Muscle.PECTORALIS,
    "pectoralismajorsternal": Muscle.PECTORALIS,
    "serratusanterior": Muscle.PECTORALIS,
    # shoulders
    "shoulders": Muscle.DELTOIDS,
    "delts": Muscle.DELTOIDS,
    "deltoidsanterior": Muscle.DELTOIDS,
    "deltoidsposterior": Muscle.DELTOIDS,
    "deltoidsmedial": Muscle.DELTOIDS,
    "anteriordeltoid": Muscle.DELTOIDS,
    "anteriordeltoids": Muscle.DELTOIDS,
    "medialdeltoid": Muscle.DELTOIDS,
    "posteriordeltoid": Muscle.DELTOIDS,
    "posteriordeltoids": Muscle.DELTOIDS,
    "rotatorcuff": Muscle.DELTOIDS,
    "infraspinatus": Muscle.DELTOIDS,
    "supraspinatus": Muscle.DELTOIDS,
    "teresminor": Muscle.DELTOIDS,
    "subscapularis": Muscle.DELTOIDS,
    # back
    "latissimusdorsi": Muscle.LATS,
    "traps": Muscle.TRAPEZIUS,
    "uppertrapezius": Muscle.TRAPEZIUS,
    "middletrapezius": Muscle.TRAPEZIUS,
    "lowertrapezius": Muscle.TRAPEZIUS,
    "levatorscapulae": Muscle.TRAPEZIUS,
    # arms
    "bicepsbrachii": Muscle.BICEPS,
    "brachialis": Muscle.BICEPS,
    "brachioradialis": Muscle.FOREARMS,
    "wristflexors": Muscle.FOREARMS,
    "wristextensors": Muscle.FOREARMS,
    "tricepslonghead": Muscle.TRICEPS,
    "tricepslateralhead": Muscle.TRICEPS,
    "tricepsmedialhead": Muscle.TRICEPS,
    # core
    "abs": Muscle.CORE,
    "abdominals": Muscle.CORE,
    "rectusabdominis": Muscle.CORE,
    "obliques": Muscle.CORE,
    "externalobliques": Muscle.CORE,
    "internalobliques": Muscle.CORE,
    "transverseabdominis": Muscle.CORE,
    "iliopsoas": Muscle.CORE,
    "erectorspinae": Muscle.CORE,
    "lowerback": Muscle.CORE,
    # legs
    "quads": Muscle.QUADRICEPS,
    "vastuslateralis": Muscle.QUADRICEPS,
    "vastusmedialis": Muscle.QUADRICEPS,
    "vastusintermedius": Muscle.QUADRICEPS,
    "rectusfemoris": Muscle.QUADRICEPS,
    "gluteusmaximus": Muscle.GLUTES,
    "gluteusmedius": Muscle.GLUTES,
    "gluteusminimus": Muscle.GLUTES,
    "hams": Muscle.HAMSTRINGS,
    "bicepsfemoris": Muscle.HAMSTRINGS,
    "semitendinosus": Muscle.HAMSTRINGS,
    "semimembranosus": Muscle.HAMSTRINGS,
    "gastrocnemius": Muscle.CALVES,
    "soleus": Muscle.CALVES,
}


def _key(name: str) -> str:
    return re.sub(r"[^a-z0-9]", "", name.lower())


_CANONICAL: Final[dict[str, Muscle]] = {_key(m.value): m for m in Muscle}


def normalize_muscle(name: str, policy: str = config.MUSCLE_NAME_POLICY) -> Muscle | None:
    """
    Map a free-text muscle name onto a tracked Muscle.

    Args:
        name: Muscle name as written in catalog or log data
        policy: "strict" or "lenient"

    Returns:
        The matching Muscle, or None for an unmapped name in lenient mode

    Raises:
        UnknownMuscleError: For an unmapped name in strict mode
        ValueError: For an unknown policy
    """
    if policy not in config.MUSCLE_NAME_POLICIES:
        raise ValueError(f"Invalid muscle name policy: {policy!r}")
    if isinstance(name, Muscle):
        return name

    key = _key(str(name))
    muscle = _CANONICAL.get(key) or MUSCLE_ALIASES.get(key)
    if muscle is not None:
        return muscle
    if policy == "strict":
        raise UnknownMuscleError(str(name))
    return None


def parse_muscle(name: str) -> Muscle:
    """Strictly parse a user-supplied muscle name (CLI arguments, stored keys)."""
    muscle = normalize_muscle(name, policy="strict")
    if muscle is None:
        raise UnknownMuscleError(str(name))
    return muscle
