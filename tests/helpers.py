def perf_record(*data_items: "dict") -> "dict":
    """
    wraps data items into a perf blob record.
    """
    return {"DataType": "LINUX_PERF_BLOB", "DataItems": list(data_items)}


def data_item(
    collections: "list[dict]",
    timestamp: "str" = "2016-06-28T21:58:24.677Z",
    host: "str" = "host-1",
    object_name: "str" = "Memory",
    instance_name: "str" = "_Total",
) -> "dict":
    return {
        "Timestamp": timestamp,
        "Host": host,
        "ObjectName": object_name,
        "InstanceName": instance_name,
        "Collections": collections,
    }
