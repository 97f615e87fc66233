__version__ = "0.1"

from setuptools import setup, find_packages

setup(name="AuthOpenID",
      version=__version__,
      description="OpenID authentication middleware for WSGI applications",
      long_description="""\
A piece of WSGI middleware (`PEP 3333`_) that authenticates users with
OpenID.  The application answers ``401 Unauthorized`` with an
``OpenID`` challenge header naming the identity to verify; the
middleware redirects the user to the identity provider and, on the
return visit, hands the application a structured response object.

.. _PEP 3333: https://peps.python.org/pep-3333/

Includes these features...

* Building and parsing ``WWW-Authenticate: OpenID ...`` challenge
  headers, in ``authopenid.header``

* The challenge/redirect/callback middleware, in
  ``authopenid.middleware``

* Verification through python3-openid, with Simple Registration and
  Attribute Exchange fields, in ``authopenid.consumer``

* Cookie based sessions kept in memory or in files, in
  ``authopenid.session``

* Catch HTTP-related exceptions (e.g., ``HTTPSeeOther``) and turn them
  into proper responses in ``authopenid.httpexceptions``
""",
      classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python",
        "Programming Language :: Python :: 3",
        "Topic :: Internet :: WWW/HTTP",
        "Topic :: Internet :: WWW/HTTP :: WSGI :: Middleware",
        "Topic :: Software Development :: Libraries :: Python Modules",
        ],
      keywords='web wsgi openid authentication middleware',
      license="MIT",
      packages=find_packages(exclude=['tests', 'tests.*']),
      python_requires='>=3.8',
      zip_safe=False,
      install_requires=[
        'python3-openid',
        'PasteDeploy',
        ],
      extras_require={
        'testing': ['pytest'],
        },
      entry_points="""
      [paste.filter_app_factory]
      openid = authopenid.middleware:make_middleware
      session = authopenid.session:make_session_middleware
      httpexceptions = authopenid.httpexceptions:make_middleware
      """,
      )
