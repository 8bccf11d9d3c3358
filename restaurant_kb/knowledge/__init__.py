"""
Knowledge base generation for the voice assistant

Classes:
    KnowledgeGenerator: Builds Q&A items from a restaurant record
"""

from restaurant_kb.knowledge.generator import KnowledgeGenerator
from restaurant_kb.knowledge.jsonl import dump_jsonl, parse_jsonl
from restaurant_kb.knowledge.voice_text import render_voice_text

__all__ = ['KnowledgeGenerator', 'dump_jsonl', 'parse_jsonl', 'render_voice_text']
