from .extraction import scoring_node, structuring_node
from .research import fetch_source_node, research_node
from .synthesis import confirmation_node, report_node

__all__ = [
    "fetch_source_node",
    "research_node",
    "structuring_node",
    "scoring_node",
    "confirmation_node",
    "report_node",
]
