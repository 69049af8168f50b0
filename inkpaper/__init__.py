"""
Ink Paper Engine
================
Handwriting capture to exam-paper export pipeline.

Architecture:
    - Stroke Capture: Accumulates timestamped pointer samples into strokes
    - Recognition Adapter: Bridges stroke sessions to an on-device recognizer
    - Recognition Store: Reactive, per-question collection of recognized text
    - Document Assembler: Builds the sectioned paper model with marks
    - RTF Encoder: Serializes the paper to an editable .doc (RTF) document
    - PDF Layout Engine: Orders paper blocks for an external page renderer

Version: 1.0.0
"""

__version__ = "1.0.0"
