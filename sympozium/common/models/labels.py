from typing import Dict


class ResourceLabels:
    SYMPOZIUM_DOMAIN: str = "sympozium.ai/"

    SYMPOZIUM_COMPONENT_LABEL = SYMPOZIUM_DOMAIN + "component"

    SYMPOZIUM_CHANNEL_LABEL = SYMPOZIUM_DOMAIN + "channel"

    SYMPOZIUM_INSTANCE_LABEL = SYMPOZIUM_DOMAIN + "instance"

    CHANNEL_COMPONENT = "channel"

    MEMORY_COMPONENT = "memory"


class Labels(ResourceLabels):
    KUBERNETES_DOMAIN = "app.kubernetes.io/"

    KUBERNETES_MANAGED_BY_LABEL = KUBERNETES_DOMAIN + "managed-by"

    KUBERNETES_PART_OF_LABEL = KUBERNETES_DOMAIN + "part-of"

    APPLICATION_NAME = "sympozium"

    _labels: Dict[str, str]

    def __init__(self, labels: Dict[str, str] = None) -> None:
        self._labels = labels if labels else dict()

    def update(self, labels: Dict[str, str]) -> "Labels":
        self._labels.update(labels.copy())
        return self

    def as_dict(self) -> Dict[str, str]:
        """Return labels as dictionary."""
        return self._labels.copy()

    def include(self, label: str, value: str) -> "Labels":
        self.update({label: value})
        return self

    def include_component(self, component: str) -> "Labels":
        return self.include(self.SYMPOZIUM_COMPONENT_LABEL, component)

    def include_channel(self, channel_type: str) -> "Labels":
        return self.include(self.SYMPOZIUM_CHANNEL_LABEL, channel_type)

    def include_instance(self, instance_name: str) -> "Labels":
        return self.include(self.SYMPOZIUM_INSTANCE_LABEL, instance_name)

    def include_kubernetes_managed_by(self, operator_name: str) -> "Labels":
        return self.include(self.KUBERNETES_MANAGED_BY_LABEL, operator_name)

    def include_kubernetes_part_of(self, instance_name: str) -> "Labels":
        return self.include(
            self.KUBERNETES_PART_OF_LABEL,
            self.get_or_valid_label_value(f"{self.APPLICATION_NAME}-{instance_name}"),
        )

    def get_or_valid_label_value(self, value: str):
        """Trim a value so that it is a valid label value:
        * (([A-Za-z0-9][-A-Za-z0-9_.]*)?[A-Za-z0-9])?
        * 63 characters max
        """
        if not value:
            return ""
        value = value[:63]
        return value.rstrip(".-_")

    def selector_labels(self) -> "Labels":
        """The identity labels, used for selectors and label based listing."""
        keys = [
            self.SYMPOZIUM_COMPONENT_LABEL,
            self.SYMPOZIUM_CHANNEL_LABEL,
            self.SYMPOZIUM_INSTANCE_LABEL,
        ]
        return Labels({key: self._labels[key] for key in keys if key in self._labels})

    def __str__(self):
        return f"Labels<{self._labels}>"

    @classmethod
    def empty(cls) -> "Labels":
        return Labels({})

    @classmethod
    def instance_selector(cls, instance_name: str, component: str = None) -> "Labels":
        """Select every child of an instance, optionally narrowed to one component role."""
        labels = Labels().include_instance(instance_name)
        if component:
            labels.include_component(component)
        return labels

    @classmethod
    def generate_channel_labels(
        cls, instance_name: str, channel_type: str, managed_by: str
    ) -> "Labels":
        return (
            Labels()
            .include_component(cls.CHANNEL_COMPONENT)
            .include_channel(channel_type)
            .include_instance(instance_name)
            .include_kubernetes_part_of(instance_name)
            .include_kubernetes_managed_by(managed_by)
        )

    @classmethod
    def generate_memory_labels(cls, instance_name: str, managed_by: str) -> "Labels":
        return (
            Labels()
            .include_instance(instance_name)
            .include_component(cls.MEMORY_COMPONENT)
            .include_kubernetes_part_of(instance_name)
            .include_kubernetes_managed_by(managed_by)
        )
