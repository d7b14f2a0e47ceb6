from setuptools import setup, find_namespace_packages

setup(
    name='provider-registry',
    version='0.1.0',
    package_dir={'': 'src'},
    packages=find_namespace_packages(where='src', include=['provider_registry*']),
    python_requires='>=3.10',
    install_requires=[
        'requests',
        'PyYAML',
        'platformdirs',
        'rich',
    ],
    extras_require={
        'test': [
            'pytest',
            'pytest-mock',
        ],
    },
    entry_points={
        'console_scripts': [
            'provider-registry=provider_registry.cli:main',
        ],
    },
    # Include other metadata as needed
)
