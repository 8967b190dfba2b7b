"""Packaging information for bitbucketfs."""

import re
import sys

import setuptools

if sys.version_info[:3] < (3, 7, 0):
    print("bitbucketfs requires Python 3.7 to run.")
    sys.exit(1)

install_requires = [
    "requests>=2.24.0",
    "lz4>=3.0.2",
    "fasteners>=0.15",
]

extras_require = {
    "dev": [
        "rope>=0.14.0",
        "flake8>=3.7.9",
        "flake8-docstrings>=1.5.0",
        "flake8-import-order>=0.18.1",
        "black>=19.10b0",
        "pylint>=2.4.4",
        "mypy>=0.770",
        "types-requests>=2.24.0",
        "pytest>=5.4.1",
        "pytest-cov>=2.8.1",
    ]
}


def _version():
    # Read without importing the package, its dependencies may not be installed yet
    with open("bitbucketfs/constants.py") as f:
        return re.search(r'^VERSION = "(.+)"', f.read(), re.MULTILINE).group(1)


def _long_description():
    with open("README.md") as f:
        return f.read()


setuptools.setup(
    name="bitbucketfs",
    version=_version(),
    description="Browse a Bitbucket Server repository as a read-only file system.",
    long_description=_long_description(),
    long_description_content_type="text/markdown",
    license="Apache",
    packages=setuptools.find_packages(include=["bitbucketfs", "bitbucketfs.*"]),
    entry_points={"console_scripts": ["bitbucketfs = bitbucketfs.__main__:main"]},
    install_requires=install_requires,
    extras_require=extras_require,
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Environment :: Console",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.7",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: OS Independent",
        "Topic :: Software Development :: Version Control :: Git",
        "Topic :: System :: Filesystems",
    ],
    python_requires=">=3.7",
)
