from setuptools import setup, find_packages


with open('README.md') as f:
    readme = f.read()

setup(
    name='kubescenario',
    version='0.1.0',
    description='Given/When/Then end-to-end scenarios against a Kubernetes cluster',
    long_description=readme,
    long_description_content_type='text/markdown',
    author='',
    author_email='',
    url='',
    python_requires='>=3.10',
    install_requires=[
        'kubernetes',
        'PyYAML',
        'Jinja2',
    ],
    extras_require={
        'test': [
            'pytest',
            'cryptography',
        ],
    },
    packages=find_packages(exclude=('tests', 'tests_e2e', 'docs'))
)
