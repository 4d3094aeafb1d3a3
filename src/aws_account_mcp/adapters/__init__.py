"""One module per AWS capability area; each function takes an ``AwsSession`` plus typed parameters."""
