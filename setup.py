from setuptools import setup, find_packages

setup(
    name="fitflow_billing",
    version="1.0.0",
    packages=find_packages(exclude=['tests', 'tests.*']),
    python_requires='>=3.9',
    install_requires=[
        'firebase-admin',
        'google-cloud-firestore',
        'stripe>=7.0',
        'pydantic>=2.0',
        'python-dotenv',
        'fastapi',
        'uvicorn'
    ],
    extras_require={
        'test': [
            'pytest',
            'httpx'
        ]
    },
)
