from app.core.masking.leaks import validate_no_leak
from app.core.masking.mapping import MappingTable, build_mapping
from app.core.masking.reversible import mask, unmask
from app.core.placeholders import Placeholder

__all__ = ["MappingTable", "Placeholder", "build_mapping", "mask", "unmask", "validate_no_leak"]
