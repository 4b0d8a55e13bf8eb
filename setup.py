# -*- coding: utf-8 -*-
#
# Copyright (c), 2024-2025, SISSA (International School for Advanced Studies).
# All rights reserved.
# This file is distributed under the terms of the MIT License.
# See the file 'LICENSE' in the root directory of the present
# distribution, or http://opensource.org/licenses/MIT.
#
# @author Davide Brunato <brunato@sissa.it>
#
from setuptools import setup, find_packages

with open("README.rst") as readme:
    long_description = readme.read()

setup(
    name='xmlconform',
    version='1.0.0',
    packages=find_packages(include=['xmlconform', 'xmlconform.*']),
    author='Davide Brunato',
    author_email='brunato@sissa.it',
    keywords=['W3C', 'conformance', 'test-suite', 'QT3', 'XSLT', 'XSD', 'XPath'],
    license='MIT',
    description='A W3C conformance test harness for XPath, XSLT and XSD processors',
    long_description=long_description,
    python_requires='>=3.10',
    install_requires=['elementpath>=4.4.0,<6.0.0', 'lxml', 'xmlschema>=3.0.0'],
    extras_require={
        'dev': ['tox', 'coverage', 'flake8', 'mypy', 'lxml-stubs']
    },
    entry_points={
        'console_scripts': [
            'xmlconform=xmlconform.cli:main',
        ]
    },
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'Intended Audience :: Information Technology',
        'License :: OSI Approved :: MIT License',
        'Operating System :: OS Independent',
        'Programming Language :: Python',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3 :: Only',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
        'Programming Language :: Python :: 3.13',
        'Programming Language :: Python :: Implementation :: CPython',
        'Topic :: Software Development :: Testing',
        'Topic :: Text Processing :: Markup :: XML',
    ]
)
