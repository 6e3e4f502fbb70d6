"""
tailrec: Self Tail-Call Elimination for Python Functions

Rewrites the source text of self tail-recursive functions into loops:
1. Comment stripping and indentation-based block scanning
2. Recognition of tail-called local definitions in three textual forms
3. Conditional-expression expansion around tail calls
4. Parallel-assignment loop synthesis with a fixpoint driver
5. Top-level unrolling through a named-let shell
6. Recompilation through code objects with an exec fallback
"""

from setuptools import setup, find_packages

setup(
    name="tailrec",
    version="1.0.0",
    description="Self tail-call elimination for Python functions by source rewriting",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    author="tailrec contributors",
    python_requires=">=3.10",
    packages=find_packages(),
    install_requires=[],
    extras_require={
        "dev": [
            "pytest>=7.0",
        ]
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Software Development :: Compilers",
        "Topic :: Software Development :: Code Generators",
    ],
)
