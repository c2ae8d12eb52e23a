class InstanceResources:
    """Encapsulates the naming scheme used by resources which the operator manages.

    Names only depend on the instance name and the channel type.
    """

    @classmethod
    def channel_workload_name(self, instance_name: str, channel_type: str):
        return f"{instance_name}-channel-{channel_type}"

    @classmethod
    def credential_store_name(self, instance_name: str, channel_type: str):
        return f"{self.channel_workload_name(instance_name, channel_type)}-data"

    @classmethod
    def credential_volume_name(self, channel_type: str):
        return f"{channel_type}-data"

    @classmethod
    def memory_store_name(self, instance_name: str):
        return f"{instance_name}-memory"
