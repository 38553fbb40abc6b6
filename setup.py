from setuptools import setup


with open('README.md', encoding='utf-8') as f:
    readme = f.read()

with open('requirements.txt') as f:
    # Basic functionality requires all the listed dependencies.
    install_req = f.read().split()

setup(
    name = 'flickrmirror',
    version = '0.3.0',  # Keep in sync with flickrmirror.VERSION.
    packages = ['flickrmirror'],
    description = 'Mirrors Flickr albums to the local filesystem, with a per-album ledger',
    long_description = readme,
    long_description_content_type = 'text/markdown',
    keywords = 'flickr mirror backup download sync audit photo album video',
    python_requires = '>=3.6',
    install_requires = install_req,
    extras_require = {
        'test': ['pyfakefs'],
    },
    entry_points = {
        "console_scripts": [
            "flickrmirror=flickrmirror:cli",
        ]
    },
)
