"""HostelKeep: duplicate issue detection and merge consistency for hostel maintenance."""
