"""
Core Package.

Contains the template rewriting logic:
- Markup parser and node model
- Attribute reader and fragment generators
- Asset resolver
- Edit buffer and source maps
- Preprocessor engine
"""
