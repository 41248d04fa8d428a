from setuptools import setup, find_packages

def parse_requirements(requirements):
    with open(requirements) as f:
        return [l.strip('\n') for l in f if l.strip('\n') and not l.startswith('#')]

requirements = parse_requirements("requirements.txt")

setup(
    name='hirehub_backend',
    version='0.1.0',
    install_requires=requirements,
    package_dir={"": "src"},
    packages=find_packages("src"),
    package_data={
        "hirehub_backend.exceptions": ["error_registry.yaml"],
    },
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "hirehub=hirehub_backend.server:run",
        ],
    }
)
