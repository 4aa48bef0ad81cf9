import io
import os
import re

from setuptools import find_packages, setup


with io.open("intake_wizard/__init__.py", "rt", encoding="utf8") as f:
    version = re.search(r"__version__ = \"(.*?)\"", f.read()).group(1)


def fpath(name):
    return os.path.join(os.path.dirname(__file__), name)


def read(fname):
    return open(fpath(fname)).read()


def desc():
    return read("README.rst")


setup(
    name="Intake-Wizard",
    version=version,
    license="BSD",
    author="Intake Wizard contributors",
    description=(
        "Multi-step intake wizards for medical transport administration, built on top of Flask."
        " Includes step-scoped validation, conditional steps, resumable drafts and"
        " guarded submission."
    ),
    long_description=desc(),
    long_description_content_type="text/x-rst",
    packages=find_packages(exclude=["tests*"]),
    entry_points={
        "flask.commands": ["intake=intake_wizard.cli:intake"],
    },
    include_package_data=True,
    zip_safe=False,
    platforms="any",
    install_requires=[
        "click>=8, <9",
        "email_validator>=1.0.5",
        "Flask>=2, <4",
        "Flask-SQLAlchemy>=2.5, <4",
        "marshmallow>=3.18.0, <5",
        "python-dateutil>=2.3, <3",
        "WTForms<4",
        "werkzeug<4",
    ],
    extras_require={
        "testing": ["pytest>=7"],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Web Environment",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: BSD License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Software Development :: Libraries :: Python Modules",
    ],
    python_requires="~=3.8",
)
