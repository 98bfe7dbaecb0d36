"""
craftport - Craft markdown exports to Hugo page bundles

This package reads documents exported from the Craft notes app, pulls their
remote images, PDFs and videos into local asset folders and writes Hugo
index.md files with frontmatter.
"""

__version__ = "1.0.0"
