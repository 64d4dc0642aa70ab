"""Setup script for the bibliography manager package."""
from setuptools import setup, find_packages

setup(
    name="bibliography-manager",
    version="1.0.0",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        "requests>=2.25.0",
        "python-dotenv>=0.19.0",
        "PyYAML>=6.0",
        "bibtexparser>=1.4,<2",
        "beautifulsoup4>=4.9",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "bibliography-manager=bibliography_manager.__main__:main",
        ],
    },
    python_requires=">=3.8",
    description="Import bibliographic sources into markdown notes and export BibTeX, CSL-JSON or Hayagriva",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    keywords="reference citation academic bibliography bibtex csl hayagriva typst",
    include_package_data=True,
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Topic :: Text Processing :: Markup",
    ],
)
