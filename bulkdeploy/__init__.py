"""bulkdeploy - bulk provisioning of app/dataset pairs on a computation marketplace."""

__version__ = "0.1.0"
