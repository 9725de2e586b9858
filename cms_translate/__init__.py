"""Translate structured CMS entries (linked entries and rich text) and save them as drafts."""

from .classifier import Classifier
from .client import ContentfulClient, Entry
from .config import Config, load_config
from .pipeline import Plan, Summary, plan_entry, process_page, run
from .reconciler import Reconciler
from .registry import FieldRegistry, TranslationEntry
from .translator import Translator
from .walker import CollectOptions, GraphWalker

__all__ = [
    "Classifier",
    "CollectOptions",
    "Config",
    "ContentfulClient",
    "Entry",
    "FieldRegistry",
    "GraphWalker",
    "Plan",
    "Reconciler",
    "Summary",
    "TranslationEntry",
    "Translator",
    "load_config",
    "plan_entry",
    "process_page",
    "run",
]

__version__ = "0.1.0"
