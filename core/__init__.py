"""core/__init__.py"""
from core.adapters import RepositoryAdapter, RestRepositoryAdapter, CliRepositoryAdapter, get_adapter
from core.classifier import ComplexityClassifier, Classification, ClassificationRule
from core.normalizer import ObjectNormalizer
from core.aggregator import AssessmentAggregator, Assessment, Finding
from core.function_catalog import get_function_mapping, list_function_mappings

__all__ = [
    "RepositoryAdapter",
    "RestRepositoryAdapter",
    "CliRepositoryAdapter",
    "get_adapter",
    "ComplexityClassifier",
    "Classification",
    "ClassificationRule",
    "ObjectNormalizer",
    "AssessmentAggregator",
    "Assessment",
    "Finding",
    "get_function_mapping",
    "list_function_mappings",
]
