from setuptools import setup, find_packages
from pathlib import Path

package_name = 'controller-tools'
description = (
    'Reconciliation helpers for Kubernetes operators: discovery-aware '
    'create, update and delete of the resources owned by a custom resource.'
)
author = 'controller-tools developers'
author_email = 'controller-tools@users.noreply.github.com'
license = 'Apache-2.0'
url = 'https://github.com/controller-tools/controller-tools'
pypi_classifiers = [
    'Development Status :: 4 - Beta',
    'License :: OSI Approved :: Apache Software License',
    'Programming Language :: Python :: 3.10',
    'Programming Language :: Python :: 3.11',
    'Programming Language :: Python :: 3.12',
]
keywords = ['kubernetes', 'operator', 'kopf']
readme = Path(__file__).parent / 'README.rst'

# Core dependencies
install_requires = [
    'kopf>=1.37',
    'kubernetes>=29.0.0',
    'structlog>=24.1.0',
    'urllib3>=1.26',
]

# Test dependencies
tests_require = [
    'pytest>=8.0',
    'pyyaml>=6.0',
]
tests_require += install_requires

# Optional dependencies (like for dev)
extras_require = {
    # For development environments
    'dev': tests_require
}

setup(
    name=package_name,
    version='0.1.0',
    description=description,
    long_description=readme.read_text(),
    author=author,
    author_email=author_email,
    url=url,
    license=license,
    classifiers=pypi_classifiers,
    keywords=keywords,
    package_dir={'': 'src'},
    packages=find_packages(where='src', exclude=['docs', 'tests']),
    python_requires='>=3.10',
    install_requires=install_requires,
    tests_require=tests_require,
    extras_require=extras_require,
    include_package_data=True
)
