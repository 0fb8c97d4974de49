"""
Processing modules: the transform pipeline and auto-enhance
"""

from .pipeline import TransformPipeline, render
from .scene_classifier import SceneClassifier, SceneDetails, classify
from .auto_enhance import AiSuggestion, AutoEnhancer, analyze_image, blend, suggest

__all__ = [
    'TransformPipeline',
    'render',
    'SceneClassifier',
    'SceneDetails',
    'classify',
    'AiSuggestion',
    'AutoEnhancer',
    'analyze_image',
    'blend',
    'suggest',
]
