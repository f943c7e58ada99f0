from collections import Counter
from typing import Dict, Iterable, Tuple

from ..schemas import Device


def aggregate(devices: Iterable[Device]) -> Tuple[Dict[str, int], Dict[str, int]]:
    """Count devices per manufacturer and per category."""
    manufacturers: Counter = Counter()
    categories: Counter = Counter()
    
    for device in devices:
        manufacturers[device.manufacturer] += 1
        categories[device.category] += 1
    
    return dict(manufacturers), dict(categories)
