"""
Vidgist - video ingestion for content summarization.

Turns a hosted video into one canonical content object through two
concurrent branches: audio extraction → transcription, and frame
sampling → visual analysis. The merged result feeds summary, slide,
mind-map and chat generators.
"""

__version__ = "0.1.0"
