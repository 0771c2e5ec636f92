#  Copyright 2026 Canonical Ltd.  This software is licensed under the
#  GNU Affero General Public License version 3 (see the file LICENSE).

"""Configuration for the identity bridge.

Configuration is declared by subclassing `Configuration`, with one
`ConfigurationOption` attribute per configuration variable, and a metaclass
inheriting from `ConfigurationMeta` that names the file to read:

* ``default`` is the default filename for the configuration file.

* ``envvar`` is the name of an environment variable that, if defined, provides
  the filename for the configuration file. This is used in preference to
  ``default``.

* ``backend`` is a factory that provides the storage mechanism.

It can be used like so::

  with BridgeConfiguration.open() as config:
      print(config.vault_url)

The bridge never writes its own configuration, so the store is read-only:
every read goes through the option's validator and returns the validated
python value, or the validator's ``if_missing`` when the option is not set.
"""

from contextlib import contextmanager
from os import environ

from formencode.api import is_validator, NoDefault
from formencode.validators import Int
import structlog
import yaml

from idbridgecommon.constants import (
    DEFAULT_CERTIFICATE_COUNTRY,
    DEFAULT_CERTIFICATE_DOMAIN,
    DEFAULT_CERTIFICATE_ORGANIZATION,
    DEFAULT_IDENTITY_HEADER,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_ROOT_PKI_MOUNT,
    DEFAULT_SERIAL_HEADER,
)
from idbridgecommon.utils.config import (
    HeaderName,
    OneWayStringBool,
    UnicodeString,
)

logger = structlog.getLogger(__name__)


class ConfigurationImmutable(Exception):
    """The configuration is read-only; it cannot be mutated."""


class ConfigurationFile:
    """Store configuration as YAML in a file."""

    def __init__(self, path):
        super().__init__()
        self.config = {}
        self.path = path

    def __iter__(self):
        return iter(self.config)

    def __getitem__(self, name):
        return self.config[name]

    def __setitem__(self, name, data):
        raise ConfigurationImmutable(f"{self}: Cannot set `{name}'.")

    def __delitem__(self, name):
        raise ConfigurationImmutable(f"{self}: Cannot set `{name}'.")

    def load(self):
        """Load the configuration.

        A missing file is an empty configuration: every option falls back to
        its default.
        """
        try:
            with open(self.path, "rb") as fd:
                config = yaml.safe_load(fd)
        except FileNotFoundError:
            logger.warning(
                "Configuration file not found, using defaults", path=self.path
            )
            config = None
        if config is None:
            self.config.clear()
        elif isinstance(config, dict):
            self.config = config
        else:
            raise ValueError(
                "Configuration in %s is not a mapping: %r"
                % (self.path, config)
            )

    def __str__(self):
        return f"{self.__class__.__qualname__}({self.path!r})"

    @classmethod
    @contextmanager
    def open(cls, path: str):
        """Open a configuration file read-only."""
        configfile = cls(path)
        configfile.load()
        yield configfile


class ConfigurationMeta(type):
    """Metaclass for configuration objects.

    :cvar envvar: The name of the environment variable which will be used to
        store the filename of the configuration file.
    :cvar default: If the environment variable named by `envvar` is not set,
        this is used as the filename.
    :cvar backend: The class used to load the configuration. This must provide
        an ``open(filename)`` method that returns a context manager. This
        context manager must provide an object with a dict-like interface.
    """

    envvar = None  # Set this in subtypes.
    default = None  # Set this in subtypes.
    backend = None  # Set this in subtypes.

    def _get_default_filename(cls):
        filename = environ.get(cls.envvar)
        if filename is None or len(filename) == 0:
            return cls.default
        else:
            return filename

    DEFAULT_FILENAME = property(
        _get_default_filename,
        doc=(
            "The default configuration file to load. Refers to "
            "`cls.envvar` in the environment."
        ),
    )


class Configuration:
    """An object that holds configuration options.

    Configuration options should be defined by creating properties using
    `ConfigurationOption`.
    Options are read-only.
    """

    __slots__ = ("store",)

    # Define this class variable in sub-classes. Using `ConfigurationMeta` as
    # a metaclass is a good way to achieve this.
    DEFAULT_FILENAME = None

    def __init__(self, store):
        """Initialise a new `Configuration` object.

        :param store: A dict-like object.
        """
        super().__init__()
        self.store = store

    @classmethod
    @contextmanager
    def open(cls, filepath=None):
        if filepath is None:
            filepath = cls.DEFAULT_FILENAME
        with cls.backend.open(filepath) as store:
            yield cls(store)


class ConfigurationOption:
    """Define a configuration option.

    This is for use with `Configuration` and its subclasses.
    """

    def __init__(self, name, doc, validator):
        """Initialise a new `ConfigurationOption`.

        :param name: The name for this option. This is the name as which this
            option will be stored in the underlying `Configuration` object.
        :param doc: A description of the option. This is mandatory.
        :param validator: A `formencode.validators.Validator`.
        """
        super().__init__()

        assert isinstance(name, str)
        assert isinstance(doc, str)
        assert is_validator(validator)
        assert validator.if_missing is not NoDefault

        self.name = name
        self.__doc__ = doc
        self.validator = validator

    def __get__(self, obj, type=None):
        if obj is None:
            return self
        try:
            value = obj.store[self.name]
        except KeyError:
            return self.validator.if_missing
        else:
            return self.validator.to_python(value)


class BridgeConfigurationMeta(ConfigurationMeta):
    """Local meta-configuration for the identity bridge."""

    envvar = "IDBRIDGE_CONFIG"
    default = "/etc/idbridge/idbridge.conf"
    backend = ConfigurationFile


class BridgeConfiguration(Configuration, metaclass=BridgeConfigurationMeta):
    """Local configuration for the identity bridge."""

    __slots__ = ()

    # HTTP server options.
    listen_host = ConfigurationOption(
        "listen_host",
        "The address the HTTP server binds to.",
        UnicodeString(if_missing="127.0.0.1", accept_python=False),
    )
    listen_port = ConfigurationOption(
        "listen_port",
        "The port the HTTP server listens on.",
        Int(if_missing=8088, accept_python=False, min=1, max=65535),
    )
    request_timeout = ConfigurationOption(
        "request_timeout",
        "Timeout, in seconds, for every call to the Authz Server or Vault.",
        Int(
            if_missing=DEFAULT_REQUEST_TIMEOUT_SECONDS,
            accept_python=False,
            min=1,
        ),
    )

    # Authz Server options.
    authz_admin_url = ConfigurationOption(
        "authz_admin_url",
        "URL of the Authz Server admin API.",
        UnicodeString(
            if_missing="https://localhost:9001", accept_python=False
        ),
    )
    authz_admin_verify_tls = ConfigurationOption(
        "authz_admin_verify_tls",
        "Whether the TLS certificate of the Authz Server admin API is "
        "verified.",
        OneWayStringBool(if_missing=True),
    )
    oidc_issuer = ConfigurationOption(
        "oidc_issuer",
        "The OpenID Connect issuer of the bearer tokens.",
        UnicodeString(
            if_missing="https://hydra.fadalax.tech:9000/", accept_python=False
        ),
    )
    oidc_client_id = ConfigurationOption(
        "oidc_client_id",
        "The client id bearer tokens are issued to.",
        UnicodeString(if_missing="fadalax-frontend", accept_python=False),
    )

    # Vault options.
    vault_url = ConfigurationOption(
        "vault_url",
        "URL for the Vault server to connect to.",
        UnicodeString(
            if_missing="https://vault.fadalax.tech:8200", accept_python=False
        ),
    )
    vault_token = ConfigurationOption(
        "vault_token",
        "Vault token for administrative operations. Falls back to the "
        "VAULT_TOKEN environment variable.",
        UnicodeString(if_missing="", accept_python=False),
    )
    vault_root_pki_mount = ConfigurationOption(
        "vault_root_pki_mount",
        "Mount path of the shared root PKI engine.",
        UnicodeString(if_missing=DEFAULT_ROOT_PKI_MOUNT, accept_python=False),
    )
    vault_oidc_redirect_uri = ConfigurationOption(
        "vault_oidc_redirect_uri",
        "Redirect URI allowed for the per-user Vault OIDC roles.",
        UnicodeString(
            if_missing=(
                "https://vault.fadalax.tech:8200"
                "/ui/vault/auth/oidc/oidc/callback"
            ),
            accept_python=False,
        ),
    )

    # Certificate options.
    certificate_domain = ConfigurationOption(
        "certificate_domain",
        "Domain of the client certificate common names (name@domain).",
        UnicodeString(
            if_missing=DEFAULT_CERTIFICATE_DOMAIN, accept_python=False
        ),
    )
    certificate_organization = ConfigurationOption(
        "certificate_organization",
        "Organization set on issued client certificates.",
        UnicodeString(
            if_missing=DEFAULT_CERTIFICATE_ORGANIZATION, accept_python=False
        ),
    )
    certificate_country = ConfigurationOption(
        "certificate_country",
        "Country set on issued client certificates.",
        UnicodeString(
            if_missing=DEFAULT_CERTIFICATE_COUNTRY, accept_python=False
        ),
    )
    identity_header = ConfigurationOption(
        "identity_header",
        "Header carrying the CN=name@domain assertions of the proxy.",
        HeaderName(if_missing=DEFAULT_IDENTITY_HEADER, not_empty=True),
    )
    serial_header = ConfigurationOption(
        "serial_header",
        "Header carrying the serial of the peer certificate.",
        HeaderName(if_missing=DEFAULT_SERIAL_HEADER, not_empty=True),
    )

    # Database options.
    database_dsn = ConfigurationOption(
        "database_dsn",
        "SQLAlchemy URL of the user database. Password login is disabled "
        "when empty.",
        UnicodeString(if_missing="", accept_python=False),
    )

    # Debug options.
    debug = ConfigurationOption(
        "debug",
        "Enable debug mode for detailed error and log reporting.",
        OneWayStringBool(if_missing=False),
    )
    debug_http = ConfigurationOption(
        "debug_http",
        "Enable HTTP debugging. Logs all HTTP requests and HTTP responses.",
        OneWayStringBool(if_missing=False),
    )
