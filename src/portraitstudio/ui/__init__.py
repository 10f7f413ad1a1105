"""Gradio front end for Portrait Studio."""
