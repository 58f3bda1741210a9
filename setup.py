# This should be only one line. If it must be multi-line, indent the second
# line onwards to keep the PKG-INFO file format intact.
"""A single-file key-value secrets store, signed and encrypted with GPG.
"""

from setuptools import find_packages, setup

version = open("src/secretstore/version.txt").read().strip()

setup(
    name="secretstore",
    version=version,
    install_requires=[
        "py", ],
    extras_require={
        "test": [
            "mock",
            "pytest",
            "pytest-coverage",
            "pytest-instafail",
            "pytest-timeout", ]},
    entry_points="""
        [console_scripts]
            secretstore = secretstore.main:main
    """,
    license="MIT",
    keywords="secrets gpg",
    classifiers="""\
License :: OSI Approved :: MIT License
Programming Language :: Python
Programming Language :: Python :: 3
Programming Language :: Python :: 3.8
Programming Language :: Python :: 3.9
Programming Language :: Python :: 3.10
Programming Language :: Python :: 3.11
Programming Language :: Python :: 3.12
Programming Language :: Python :: 3 :: Only
"""[:-1].split("\n"),
    description=__doc__.strip(),
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    packages=find_packages("src"),
    package_dir={"": "src"},
    package_data={"secretstore": ["version.txt"]},
    include_package_data=True,
    zip_safe=False,
    python_requires=">=3.8")
