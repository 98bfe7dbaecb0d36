"""
craftport - Craft markdown exports to Hugo page bundles

Installation:
    pip install -e .

This installs the 'craftport' command in your environment.
"""

from setuptools import setup, find_packages
import os

# Read README for long description
long_description = ''
if os.path.exists('README.md'):
    with open('README.md', 'r', encoding='utf-8') as f:
        long_description = f.read()

setup(
    name='craftport',
    version='1.0.0',
    description='Migrate Craft markdown exports into Hugo page bundles',
    long_description=long_description,
    long_description_content_type='text/markdown',
    license='MIT',

    packages=find_packages(exclude=['tests', 'tests.*']),

    python_requires='>=3.9',

    # Dependencies
    install_requires=[
        'click>=8.0',
        'python-frontmatter>=1.0',
        'PyYAML>=6.0',
        'requests>=2.28',
        'Pillow>=10.0',
    ],

    # Optional dependencies
    extras_require={
        'dev': [
            'pytest>=7.4',
            'pytest-cov>=4.1',
            'pytest-mock>=3.11',
        ],
    },

    # CLI entry point - this creates the 'craftport' command
    entry_points={
        'console_scripts': [
            'craftport=craftport.cli:cli',
        ],
    },

    classifiers=[
        'Development Status :: 4 - Beta',
        'Environment :: Console',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Topic :: Text Processing :: Markup :: Markdown',
    ],

    keywords='craft hugo markdown migration static-site',
)
