"""Migration sources: the driver interface, file-name parsing and the file, file-system, bindata and stub drivers."""