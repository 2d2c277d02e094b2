"""Face-to-identity matching."""
from .matcher import Matcher, assign_greedy
from .similarity import similarity, similarity_matrix

__all__ = ["Matcher", "assign_greedy", "similarity", "similarity_matrix"]
