#!/usr/bin/env python
from setuptools import find_packages, setup

VERSION = __import__("qanda").get_version()
INSTALL_REQUIREMENTS = [
    "Django>=5.0",
    "django-structlog",
    "psycopg2-binary",
    "sentry-sdk",
    "structlog",
    "XlsxWriter",
]
TEST_REQUIREMENTS = ["Faker", "pytest", "pytest-django"]
SCRIPTS = ["manage.py"]
DESCRIPTION = "Question and answer moderation back-office"
CLASSIFIERS = """\
Environment :: Web Environment
Framework :: Django
Programming Language :: Python
Programming Language :: Python :: 3
""".splitlines()

with open("README.md", "r") as f:
    LONG_DESCRIPTION = f.read()


setup(
    name="qanda",
    version=VERSION,
    description=DESCRIPTION,
    long_description=LONG_DESCRIPTION,
    long_description_content_type="text/markdown",
    packages=find_packages(),
    include_package_data=True,
    scripts=SCRIPTS,
    install_requires=INSTALL_REQUIREMENTS,
    extras_require={"test": TEST_REQUIREMENTS},
    python_requires=">=3.10",
    classifiers=CLASSIFIERS,
)
