import os
from dataclasses import dataclass


@dataclass
class Config:
    # metrics account every handle is created under
    mdm_account: "str" = ""
    # listen_address: format ":9186" or
    # "0.0.0.0:9186", empty disables the HTTP server
    listen_address: "str" = ":9186"
    log_level: "str" = "info"
    # records per batch handed to the processor
    batch_size: "int" = 500
    # "log" or "prometheus"
    sink: "str" = "log"
    # path of the NDJSON input, "-" for stdin
    input_path: "str" = "-"

    @classmethod
    def from_env(cls) -> "Config":
        return cls(
            mdm_account=os.environ.get("MDM_ACCOUNT", ""),
        )

    @property
    def sink_verbose(self) -> "bool":
        """
        whether the sink should trace every point it receives.
        """
        return self.log_level == "debug"
