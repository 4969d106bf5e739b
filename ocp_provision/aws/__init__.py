"""AWS session handling and CloudFormation helpers."""
