from .envelope import EXPORT_VERSION, build_envelope, parse_envelope, to_json
from .traverser import ReachabilityTraverser
