"""
FigMark - an embeddable image annotation editor.

This package contains the main application modules:
- core: Application core and wiring
- ui: Host window around the editor
- editor: Annotation model, history, rendering, interaction, export
- services: Application services (config, logging)
"""

__version__ = "0.1.0"
