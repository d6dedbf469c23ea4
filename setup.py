# Copyright DataStax, Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import re
from os import path

from setuptools import setup

this_directory = path.abspath(path.dirname(__file__))
with open(path.join(this_directory, "README.MD"), encoding="utf-8") as f:
    long_description = f.read()

# the package itself imports its dependencies, hence it is not imported here
with open(path.join(this_directory, "amongo", "__init__.py"), encoding="utf-8") as f:
    version_match = re.search(r'^__version__ = "([^"]+)"', f.read(), re.MULTILINE)
if version_match is None:
    raise RuntimeError("Cannot find __version__ in amongo/__init__.py")
__version__ = version_match.group(1)

with open(path.join(this_directory, "requirements.txt"), encoding="utf-8") as f:
    install_requires = [
        req_line.strip()
        for req_line in f.readlines()
        if req_line.strip() != ""
        if req_line.strip()[0] != "#"
        if "-e ." not in req_line
    ]

setup(
    name="amongo",
    packages=[
        "amongo",
        "amongo.cursors",
        "amongo.exceptions",
        "amongo.protocol",
        "amongo.settings",
        "amongo.utils",
    ],
    package_data={"amongo": ["py.typed"]},
    version=__version__,
    license="Apache license 2.0",
    description="Asynchronous core of a MongoDB-style driver",
    long_description=long_description,
    long_description_content_type="text/markdown",
    keywords=["MongoDB", "BSON", "async", "driver"],
    python_requires=">=3.8",
    install_requires=install_requires,
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Database",
        "License :: OSI Approved :: Apache Software License",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
