import os
import re
from codecs import open

from setuptools import find_packages
from setuptools import setup

here = os.path.abspath(os.path.dirname(__file__))

with open(os.path.join(here, "README.md"), encoding="utf-8") as f:
    long_description = f.read()
long_description_content_type = "text/markdown"

with open(os.path.join(here, "cartscope/version.py")) as f:
    match = re.search(r'VERSION = "(.+?)"', f.read())
    assert match
    VERSION = match.group(1)

setup(
    name="cartscope",
    version=VERSION,
    description="A mitmproxy addon that rebuilds ChatGPT conversation and product records from streamed responses.",
    long_description=long_description,
    long_description_content_type=long_description_content_type,
    license="MIT",
    classifiers=[
        "License :: OSI Approved :: MIT License",
        "Development Status :: 4 - Beta",
        "Operating System :: MacOS",
        "Operating System :: POSIX",
        "Operating System :: Microsoft :: Windows",
        "Programming Language :: Python :: 3 :: Only",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: Implementation :: CPython",
        "Topic :: Internet :: WWW/HTTP",
        "Topic :: Internet :: Proxy Servers",
        "Topic :: System :: Networking :: Monitoring",
        "Typing :: Typed",
    ],
    packages=find_packages(
        include=[
            "cartscope",
            "cartscope.*",
        ]
    ),
    include_package_data=True,
    entry_points={
        "console_scripts": [
            "cartscope = cartscope.tools.main:cartscope",
        ],
    },
    python_requires=">=3.10",
    # https://packaging.python.org/en/latest/discussions/install-requires-vs-requirements/#install-requires
    # It is not considered best practice to use install_requires to pin dependencies to specific versions.
    install_requires=[
        "mitmproxy>=10.0",
        "sentry-sdk>=2.0,<3",
    ],
    extras_require={
        "dev": [
            "hypothesis>=5.8",
            "pytest-asyncio>=0.21",
            "pytest-cov>=2.7.1",
            "pytest-timeout>=1.3.3",
            "pytest>=7.0",
        ],
    },
)
