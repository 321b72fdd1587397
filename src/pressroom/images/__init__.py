"""Adaptive image generation: pre-analysis, prompt writing, rendering, critique."""
