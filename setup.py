"""
Setup configuration for mountserve
"""

from setuptools import setup, find_packages
import os


# Read README
def read_file(filename):
    with open(os.path.join(os.path.dirname(__file__), filename), encoding='utf-8') as f:
        return f.read()


setup(
    name='mountserve',
    version='1.0.0',
    description='Storage abstraction and remote mount lifecycle manager for static file serving',
    long_description=read_file('README.md'),
    long_description_content_type='text/markdown',
    license='Apache License 2.0',

    packages=find_packages(exclude=['tests', 'tests.*']),

    install_requires=[
        'boto3>=1.28.0',
        'click>=8.1.3',
        'psutil>=5.9.0',
        'python-json-logger>=3.1.0',
        'tabulate>=0.9.0',
    ],

    extras_require={
        'dev': [
            'pytest>=7.4.0',
            'pytest-cov>=4.1.0',
            'pytest-mock>=3.11.1',
        ],
    },

    entry_points={
        'console_scripts': [
            'mountserve=mountserve.cli:main',
        ],
    },

    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: System Administrators',
        'License :: OSI Approved :: Apache Software License',
        'Operating System :: POSIX :: Linux',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.8',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Topic :: Internet :: WWW/HTTP :: HTTP Servers',
        'Topic :: System :: Filesystems',
    ],

    python_requires='>=3.8',

    include_package_data=True,
    zip_safe=False,

    keywords='static files storage sshfs s3 mount',
)
